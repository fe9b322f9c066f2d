from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .state import TicketStatus


class TicketType(str, Enum):
    """Kinds of request a ticket can represent."""

    PRODUCT_SUPPORT = "product_support"
    COMMERCIAL = "commercial"


class TicketPriority(str, Enum):
    """Ticket urgency, ordered by :attr:`weight`."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def default(cls) -> "TicketPriority":
        return cls.NORMAL

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHTS[self]

    def escalated(self) -> "TicketPriority":
        """Return the next priority up, or the same one when already urgent."""

        ordered = sorted(TicketPriority, key=lambda priority: priority.weight)
        index = ordered.index(self)
        return ordered[min(index + 1, len(ordered) - 1)]


_PRIORITY_WEIGHTS = {
    TicketPriority.LOW: 1,
    TicketPriority.NORMAL: 2,
    TicketPriority.HIGH: 3,
    TicketPriority.URGENT: 4,
}


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a support ticket entry."""

    id: str
    subject: str
    type: TicketType
    priority: TicketPriority
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    assignee_id: str | None = None
    first_response_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    last_comment_at: datetime | None = None

    @property
    def last_activity_at(self) -> datetime:
        """Latest comment timestamp, or the last ticket update when there are no comments."""

        return self.last_comment_at or self.updated_at


@dataclass(slots=True)
class TicketComment:
    """Comment attached to a ticket, public or internal."""

    id: str
    ticket_id: str
    body: str
    is_internal: bool
    author_ref: str | None
    created_at: datetime
