from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable

from helpdesk.core.config import SlaSettings
from helpdesk.tickets.models import Ticket, TicketPriority, TicketType

FIRST_RESPONSE = "first_response"
RESOLUTION = "resolution"


@dataclass(frozen=True, slots=True)
class SlaDeadlines:
    """Due timestamps derived from a ticket; ``None`` means no deadline applies."""

    first_response_due_at: datetime | None = None
    resolution_due_at: datetime | None = None


def _as_minutes(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return None
    return None


class SlaPolicy:
    """Compute SLA deadlines from ticket type/priority and injected settings.

    Each deadline kind is resolved independently, most specific first: type
    override for the priority, the type's own minutes, the priority rule and
    finally the global default. The first numeric value wins.
    """

    def __init__(self, settings: SlaSettings) -> None:
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    def default_priority_for(self, ticket_type: TicketType | str | None) -> TicketPriority:
        type_settings = self._settings.types.get(_type_value(ticket_type))
        if type_settings is None:
            return TicketPriority.default()
        try:
            return TicketPriority(type_settings.default_priority)
        except ValueError:
            return TicketPriority.default()

    def minutes_for(self, ticket_type: TicketType | str, priority: TicketPriority | str, kind: str) -> int | None:
        if kind not in (FIRST_RESPONSE, RESOLUTION):
            raise ValueError(f"Unknown SLA kind: {kind}")
        for value in self._candidates(_type_value(ticket_type), _priority_value(priority), kind):
            minutes = _as_minutes(value)
            if minutes is not None:
                return minutes
        return None

    def deadlines_for(self, ticket: Ticket) -> SlaDeadlines:
        if not self._settings.enabled:
            return SlaDeadlines()

        first_response = self.minutes_for(ticket.type, ticket.priority, FIRST_RESPONSE)
        resolution = self.minutes_for(ticket.type, ticket.priority, RESOLUTION)
        return SlaDeadlines(
            first_response_due_at=_due(ticket.created_at, first_response),
            resolution_due_at=_due(ticket.created_at, resolution),
        )

    def _candidates(self, ticket_type: str, priority: str, kind: str) -> Iterable[Any]:
        override = self._settings.type_overrides.get(ticket_type, {}).get(priority)
        if override is not None:
            yield getattr(override, kind)

        type_settings = self._settings.types.get(ticket_type)
        if type_settings is not None:
            yield getattr(type_settings, f"due_minutes_{kind}")

        rule = self._settings.rules.get(priority)
        if rule is not None:
            yield getattr(rule, kind)

        yield getattr(self._settings.defaults, kind)


def _due(created_at: datetime, minutes: int | None) -> datetime | None:
    if minutes is None:
        return None
    return created_at + timedelta(minutes=minutes)


def _type_value(ticket_type: TicketType | str | None) -> str:
    if isinstance(ticket_type, TicketType):
        return ticket_type.value
    return ticket_type or TicketType.PRODUCT_SUPPORT.value


def _priority_value(priority: TicketPriority | str) -> str:
    return priority.value if isinstance(priority, TicketPriority) else priority
