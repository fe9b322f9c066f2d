from __future__ import annotations

import logging

from helpdesk.events import EventBus, TicketEscalated
from helpdesk.ports import TicketPriorityStore
from helpdesk.tickets.lifecycle import Clock, utcnow
from helpdesk.tickets.models import Ticket

logger = logging.getLogger(__name__)


class PriorityEscalationEvaluator:
    """Escalation rule that raises the ticket priority one step per evaluation.

    The ticket is re-read before writing and only its priority is stored, so a
    status change made since the caller's snapshot is kept. Terminal and
    urgent tickets are left untouched. Other triggers are ignored.
    """

    def __init__(
        self,
        store: TicketPriorityStore,
        *,
        events: EventBus | None = None,
        triggers: frozenset[str] = frozenset({"escalation_check"}),
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._events = events or EventBus()
        self._triggers = triggers
        self._clock = clock

    async def evaluate(self, ticket: Ticket, trigger: str) -> None:
        if trigger not in self._triggers:
            logger.debug("No escalation rule for trigger %s", trigger)
            return

        fresh = await self._store.find(ticket.id)
        if fresh is None or fresh.status.is_terminal():
            logger.info("Ticket %s no longer open for escalation", ticket.id)
            return

        current = fresh.priority
        escalated = current.escalated()
        if escalated is current:
            logger.info("Ticket %s already at %s priority; nothing to escalate", ticket.id, current.value)
            return

        now = self._clock()
        if not await self._store.save_priority(fresh.id, escalated, updated_at=now):
            logger.info("Ticket %s disappeared before escalation", ticket.id)
            return
        ticket.priority = escalated
        ticket.updated_at = now

        logger.info("Ticket %s escalated from %s to %s", ticket.id, current.value, escalated.value)
        self._events.publish(
            TicketEscalated(
                ticket_id=ticket.id,
                from_priority=current,
                to_priority=escalated,
                trigger=trigger,
                occurred_at=now,
            )
        )
