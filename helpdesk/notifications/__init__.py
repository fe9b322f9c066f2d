"""Notification channels subscribed to the helpdesk event stream."""

from .logging import LoggingErrorReporter, LoggingNotifier

__all__ = ["LoggingErrorReporter", "LoggingNotifier"]
