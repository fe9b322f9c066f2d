from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Tuple


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[TicketStatus] = frozenset({TicketStatus.CLOSED, TicketStatus.CANCELLED})

Edge = Tuple[TicketStatus, TicketStatus]


class TicketStateMachine:
    """Validate ticket lifecycle transitions against an explicit edge table.

    Any pair missing from the table is denied. Terminal statuses have no
    outgoing edges. ``resolved`` is a pre-close state: it can be closed or
    reopened.
    """

    _EDGES: FrozenSet[Edge] = frozenset(
        {
            (TicketStatus.OPEN, TicketStatus.IN_PROGRESS),
            (TicketStatus.OPEN, TicketStatus.PENDING),
            (TicketStatus.OPEN, TicketStatus.RESOLVED),
            (TicketStatus.OPEN, TicketStatus.CLOSED),
            (TicketStatus.OPEN, TicketStatus.CANCELLED),
            (TicketStatus.IN_PROGRESS, TicketStatus.PENDING),
            (TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED),
            (TicketStatus.IN_PROGRESS, TicketStatus.CLOSED),
            (TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED),
            (TicketStatus.PENDING, TicketStatus.OPEN),
            (TicketStatus.PENDING, TicketStatus.IN_PROGRESS),
            (TicketStatus.PENDING, TicketStatus.RESOLVED),
            (TicketStatus.PENDING, TicketStatus.CANCELLED),
            (TicketStatus.RESOLVED, TicketStatus.CLOSED),
            # reopen
            (TicketStatus.RESOLVED, TicketStatus.OPEN),
            (TicketStatus.RESOLVED, TicketStatus.IN_PROGRESS),
        }
    )

    def __init__(self, edges: FrozenSet[Edge] | None = None) -> None:
        self._edges = frozenset(edges) if edges is not None else self._EDGES

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    def is_allowed(self, current: TicketStatus, target: TicketStatus) -> bool:
        return (current, target) in self._edges

    def allowed_targets(self, current: TicketStatus) -> list[TicketStatus]:
        return [status for status in TicketStatus if (current, status) in self._edges]

    def edges(self) -> FrozenSet[Edge]:
        return self._edges
