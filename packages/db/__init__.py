"""Database models and utilities."""

from .models import AutomationExecutionTable, TicketCommentTable, TicketTable

__all__ = [
    "AutomationExecutionTable",
    "TicketCommentTable",
    "TicketTable",
]
