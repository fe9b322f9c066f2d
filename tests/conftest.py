from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from helpdesk.automation import AutomationDispatcher
from helpdesk.core.config import AutomationSettings, SlaSettings
from helpdesk.events import EventBus
from helpdesk.metrics import MetricsRegistry, register_default_metrics
from helpdesk.sla import SlaPolicy
from helpdesk.tickets import Ticket, TicketLifecycle, TicketPriority, TicketStatus, TicketType

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_ticket(
    *,
    ticket_id: str = "t-1",
    status: TicketStatus = TicketStatus.OPEN,
    ticket_type: TicketType = TicketType.PRODUCT_SUPPORT,
    priority: TicketPriority = TicketPriority.NORMAL,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
    **fields,
) -> Ticket:
    created = created_at or NOW - timedelta(days=10)
    return Ticket(
        id=ticket_id,
        subject="Printer on fire",
        type=ticket_type,
        priority=priority,
        status=status,
        created_at=created,
        updated_at=updated_at or created,
        **fields,
    )


class InMemoryTicketStore:
    """Ticket store handing out copies, so each read is an independent snapshot."""

    def __init__(self, *tickets: Ticket) -> None:
        self.tickets: dict[str, Ticket] = {ticket.id: replace(ticket) for ticket in tickets}
        self.saved: list[Ticket] = []
        self.find_calls = 0
        self.priority_writes: list[tuple[str, TicketPriority]] = []
        self.fail_on_save: Exception | None = None

    async def find(self, ticket_id: str) -> Ticket | None:
        self.find_calls += 1
        ticket = self.tickets.get(ticket_id)
        return replace(ticket) if ticket is not None else None

    async def save(self, ticket: Ticket) -> None:
        if self.fail_on_save is not None:
            raise self.fail_on_save
        self.tickets[ticket.id] = replace(ticket)
        self.saved.append(replace(ticket))

    async def save_priority(self, ticket_id: str, priority: TicketPriority, *, updated_at: datetime) -> bool:
        stored = self.tickets.get(ticket_id)
        if stored is None:
            return False
        stored.priority = priority
        stored.updated_at = updated_at
        self.priority_writes.append((ticket_id, priority))
        return True


class RecordingComments:
    def __init__(self, *failures: Exception) -> None:
        self.comments: list[dict] = []
        self.failures = list(failures)

    async def append(self, ticket_id: str, body: str, *, is_internal: bool, author_ref: str | None = None) -> None:
        if self.failures:
            raise self.failures.pop(0)
        self.comments.append(
            {"ticket_id": ticket_id, "body": body, "is_internal": is_internal, "author_ref": author_ref}
        )


class RecordingRuleEvaluator:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def evaluate(self, ticket: Ticket, trigger: str) -> None:
        self.calls.append((ticket.id, trigger))


class RecordingNotifier:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error = error

    async def notify_assignee(self, ticket: Ticket, message: str) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append((ticket.id, message))


class RecordingExecutionRecorder:
    def __init__(self) -> None:
        self.retries: list[tuple[str, int]] = []
        self.failures: list[tuple[str, int]] = []
        self.successes: list[int] = []
        self.rejections: list[str] = []

    async def mark_retry(self, task, error: str, attempt: int) -> None:
        self.retries.append((error, attempt))

    async def mark_failed(self, task, error: str, attempts: int) -> None:
        self.failures.append((error, attempts))

    async def mark_succeeded(self, task, attempts: int) -> None:
        self.successes.append(attempts)

    async def mark_rejected(self, task, reason: str) -> None:
        self.rejections.append(reason)


class RecordingReporter:
    def __init__(self) -> None:
        self.errors: list[BaseException] = []

    def report(self, error: BaseException) -> None:
        self.errors.append(error)


@pytest.fixture
def metrics() -> MetricsRegistry:
    return register_default_metrics(MetricsRegistry())


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def store() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def comments() -> RecordingComments:
    return RecordingComments()


@pytest.fixture
def rule_evaluator() -> RecordingRuleEvaluator:
    return RecordingRuleEvaluator()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def lifecycle(store, events, metrics) -> TicketLifecycle:
    return TicketLifecycle(store, events=events, metrics=metrics, clock=lambda: NOW)


@pytest.fixture
def sla_policy() -> SlaPolicy:
    return SlaPolicy(SlaSettings())


@pytest.fixture
def dispatcher(store, lifecycle, comments, rule_evaluator, notifier, sla_policy) -> AutomationDispatcher:
    return AutomationDispatcher(
        store,
        lifecycle,
        comments,
        rule_evaluator,
        notifier,
        sla_policy=sla_policy,
        settings=AutomationSettings(),
        clock=lambda: NOW,
    )
