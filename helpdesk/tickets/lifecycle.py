from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from helpdesk.events import EventBus, TicketTransitioned
from helpdesk.metrics import MetricsRegistry, register_default_metrics
from helpdesk.ports import TicketStore

from .models import Ticket
from .state import TicketStateMachine, TicketStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HelpdeskError(RuntimeError):
    """Base error for helpdesk domain issues."""


class TicketNotFoundError(HelpdeskError):
    """Raised when a ticket could not be located."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(f"Ticket {ticket_id} not found")
        self.ticket_id = ticket_id


class InvalidTicketTransitionError(HelpdeskError):
    """Raised when a status change is not an edge of the transition table."""

    def __init__(self, from_status: TicketStatus, to_status: TicketStatus) -> None:
        super().__init__(f"Cannot transition ticket from {from_status.value} to {to_status.value}")
        self.from_status = from_status
        self.to_status = to_status


class TicketLifecycle:
    """Sole writer of a ticket's status.

    The change is saved before ``TicketTransitioned`` is published; a failing
    subscriber cannot undo it.
    """

    def __init__(
        self,
        store: TicketStore,
        *,
        state_machine: TicketStateMachine | None = None,
        events: EventBus | None = None,
        metrics: MetricsRegistry | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._state_machine = state_machine or TicketStateMachine()
        self._events = events or EventBus()
        self._metrics = metrics or register_default_metrics()
        self._clock = clock

    @property
    def state_machine(self) -> TicketStateMachine:
        return self._state_machine

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._store.find(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def transition(self, ticket: Ticket, target: TicketStatus, *, actor: str | None = None) -> Ticket:
        current = ticket.status
        if not self._state_machine.is_allowed(current, target):
            raise InvalidTicketTransitionError(current, target)

        now = self._clock()
        previous = (ticket.status, ticket.updated_at, ticket.first_response_at, ticket.resolved_at, ticket.closed_at)

        ticket.status = target
        ticket.updated_at = now
        if target is TicketStatus.IN_PROGRESS and ticket.first_response_at is None:
            ticket.first_response_at = now
        if target is TicketStatus.RESOLVED and ticket.resolved_at is None:
            ticket.resolved_at = now
        ticket.closed_at = now if target.is_terminal() else None

        try:
            await self._store.save(ticket)
        except Exception:
            (
                ticket.status,
                ticket.updated_at,
                ticket.first_response_at,
                ticket.resolved_at,
                ticket.closed_at,
            ) = previous
            raise

        logger.info(
            "Ticket transitioned",
            extra={"ticket_id": ticket.id, "from_status": current.value, "to_status": target.value},
        )
        self._metrics.counter("ticket_transitions_total").inc(
            labels={"from_status": current.value, "to_status": target.value}
        )
        self._events.publish(
            TicketTransitioned(
                ticket_id=ticket.id,
                from_status=current,
                to_status=target,
                actor=actor,
                occurred_at=now,
            )
        )
        return ticket

    async def change_status(self, ticket_id: str, *, new_status: TicketStatus, actor: str | None = None) -> Ticket:
        """Load the current snapshot and transition it."""

        ticket = await self.get_ticket(ticket_id)
        return await self.transition(ticket, new_status, actor=actor)

    async def mark_first_response(self, ticket: Ticket) -> bool:
        """Record the first response once; later calls leave the timestamp alone."""

        if ticket.first_response_at is not None:
            return False
        ticket.first_response_at = self._clock()
        await self._store.save(ticket)
        return True
