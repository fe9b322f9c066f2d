"""Ticket domain models and lifecycle."""

from .lifecycle import HelpdeskError, InvalidTicketTransitionError, TicketLifecycle, TicketNotFoundError
from .models import Ticket, TicketComment, TicketPriority, TicketType
from .state import TERMINAL_STATUSES, TicketStateMachine, TicketStatus

__all__ = [
    "HelpdeskError",
    "InvalidTicketTransitionError",
    "TERMINAL_STATUSES",
    "Ticket",
    "TicketComment",
    "TicketLifecycle",
    "TicketNotFoundError",
    "TicketPriority",
    "TicketStateMachine",
    "TicketStatus",
    "TicketType",
]
