"""HTTP routes."""

from . import automation, metrics, ping, tickets

__all__ = ["automation", "metrics", "ping", "tickets"]
