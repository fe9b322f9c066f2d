"""Capabilities the engine consumes from the surrounding system."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from helpdesk.automation.tasks import AutomationTask
    from helpdesk.tickets.models import Ticket, TicketPriority


class TicketStore(Protocol):
    async def find(self, ticket_id: str) -> Ticket | None:
        ...

    async def save(self, ticket: Ticket) -> None:
        ...


class TicketPriorityStore(TicketStore, Protocol):
    """Store that can change priority without rewriting the rest of the ticket."""

    async def save_priority(self, ticket_id: str, priority: TicketPriority, *, updated_at: datetime) -> bool:
        ...


class CommentAppender(Protocol):
    async def append(
        self,
        ticket_id: str,
        body: str,
        *,
        is_internal: bool,
        author_ref: str | None = None,
    ) -> None:
        ...


class AutomationRuleEvaluator(Protocol):
    async def evaluate(self, ticket: Ticket, trigger: str) -> None:
        ...


class AssigneeNotifier(Protocol):
    async def notify_assignee(self, ticket: Ticket, message: str) -> None:
        ...


class ErrorReporter(Protocol):
    """Side channel for permanent failures. Implementations must not raise."""

    def report(self, error: BaseException) -> None:
        ...


class ExecutionRecorder(Protocol):
    async def mark_retry(self, task: "AutomationTask", error: str, attempt: int) -> None:
        ...

    async def mark_failed(self, task: "AutomationTask", error: str, attempts: int) -> None:
        ...

    async def mark_succeeded(self, task: "AutomationTask", attempts: int) -> None:
        ...

    async def mark_rejected(self, task: "AutomationTask", reason: str) -> None:
        ...
