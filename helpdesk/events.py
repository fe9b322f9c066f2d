"""In-process event stream for ticket and automation notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, DefaultDict, List, Type

if TYPE_CHECKING:
    from helpdesk.automation.tasks import AutomationOutcome, AutomationTask
    from helpdesk.tickets.models import TicketPriority
    from helpdesk.tickets.state import TicketStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TicketTransitioned:
    """Published after a status change has been persisted."""

    ticket_id: str
    from_status: TicketStatus
    to_status: TicketStatus
    actor: str | None
    occurred_at: datetime


@dataclass(frozen=True, slots=True)
class TicketEscalated:
    """Published when an escalation rule raised a ticket's priority."""

    ticket_id: str
    from_priority: TicketPriority
    to_priority: TicketPriority
    trigger: str
    occurred_at: datetime


@dataclass(frozen=True, slots=True)
class AutomationProcessed:
    """Published when an automation task finished without a permanent failure."""

    task: "AutomationTask"
    outcome: "AutomationOutcome"
    attempts: int
    warnings: tuple[str, ...] = field(default=())


Subscriber = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe hub.

    Delivery is best-effort: a failing subscriber is logged and the remaining
    subscribers still receive the event. Publishers never see the error.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[type, List[Subscriber]] = defaultdict(list)

    def subscribe(self, event_type: Type[Any], subscriber: Subscriber) -> None:
        self._subscribers[event_type].append(subscriber)

    def unsubscribe(self, event_type: Type[Any], subscriber: Subscriber) -> None:
        subscribers = self._subscribers.get(event_type, [])
        if subscriber in subscribers:
            subscribers.remove(subscriber)

    def publish(self, event: Any) -> None:
        for subscriber in list(self._subscribers.get(type(event), [])):
            try:
                subscriber(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %s", subscriber, type(event).__name__)
