"""Log channel for helpdesk notifications and automation failures."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from helpdesk.events import AutomationProcessed, EventBus, TicketEscalated, TicketTransitioned
from helpdesk.tickets.models import Ticket

logger = logging.getLogger(__name__)

_ALLOWED_LEVELS = {"debug", "info", "warning", "error", "critical"}


class LoggingNotifier:
    """Delivers notifications by writing them to the application log."""

    def __init__(self, *, level: str = "info", log: logging.Logger | None = None) -> None:
        level = level.lower()
        self._level = logging.getLevelName(level.upper()) if level in _ALLOWED_LEVELS else logging.INFO
        self._log = log or logger

    def send(self, event: str, ticket_id: str, context: Mapping[str, Any] | None = None) -> None:
        self._log.log(
            self._level,
            "Helpdesk notification: %s for ticket %s",
            event,
            ticket_id,
            extra={"event": event, "ticket_id": ticket_id, "context": dict(context or {})},
        )

    async def notify_assignee(self, ticket: Ticket, message: str) -> None:
        self.send(
            "assignee_follow_up",
            ticket.id,
            {"assignee_id": ticket.assignee_id, "subject": ticket.subject, "message": message},
        )

    def on_ticket_transitioned(self, event: TicketTransitioned) -> None:
        self.send(
            "ticket_status_changed",
            event.ticket_id,
            {"from": event.from_status.value, "to": event.to_status.value, "actor": event.actor},
        )

    def on_ticket_escalated(self, event: TicketEscalated) -> None:
        self.send(
            "ticket_escalated",
            event.ticket_id,
            {"from": event.from_priority.value, "to": event.to_priority.value, "trigger": event.trigger},
        )

    def on_automation_processed(self, event: AutomationProcessed) -> None:
        context: dict[str, Any] = {
            "task_id": event.task.id,
            "task_type": event.task.task_type,
            "status": event.outcome.status.value,
            "attempts": event.attempts,
        }
        if event.outcome.reason is not None:
            context["reason"] = event.outcome.reason.value
        if event.warnings:
            context["warnings"] = list(event.warnings)
        self.send("automation_processed", event.task.ticket_id, context)

    def subscribe(self, events: EventBus) -> None:
        events.subscribe(TicketTransitioned, self.on_ticket_transitioned)
        events.subscribe(TicketEscalated, self.on_ticket_escalated)
        events.subscribe(AutomationProcessed, self.on_automation_processed)


class LoggingErrorReporter:
    """Reports permanent failures to the error log, with traceback."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report(self, error: BaseException) -> None:
        self._log.error("Automation failure reported: %s", error, exc_info=error)
