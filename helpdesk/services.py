"""Assembly of the engine from settings and a database session factory."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from helpdesk.automation import (
    AutomationDispatcher,
    AutomationExecutionRepository,
    PriorityEscalationEvaluator,
    RetryableTaskRunner,
    RetryPolicy,
)
from helpdesk.core.config import Settings
from helpdesk.events import EventBus
from helpdesk.metrics import MetricsRegistry, metrics_registry
from helpdesk.notifications import LoggingErrorReporter, LoggingNotifier
from helpdesk.sla import DeadlineEvaluator, SlaPolicy
from helpdesk.tickets import TicketLifecycle
from helpdesk.tickets.repository import CommentRepository, TicketRepository


def to_asyncpg_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    return dsn


@dataclass(slots=True)
class HelpdeskServices:
    events: EventBus
    metrics: MetricsRegistry
    tickets: TicketRepository
    comments: CommentRepository
    executions: AutomationExecutionRepository
    sla_policy: SlaPolicy
    deadline_evaluator: DeadlineEvaluator
    lifecycle: TicketLifecycle
    dispatcher: AutomationDispatcher
    runner: RetryableTaskRunner


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    engine: AsyncEngine | None = None,
    metrics: MetricsRegistry | None = None,
) -> HelpdeskServices:
    events = EventBus()
    metrics = metrics or metrics_registry
    notifier = LoggingNotifier()
    notifier.subscribe(events)

    tickets = TicketRepository(session_factory, engine=engine)
    comments = CommentRepository(session_factory)
    executions = AutomationExecutionRepository(session_factory)
    sla_policy = SlaPolicy(settings.sla)
    deadline_evaluator = DeadlineEvaluator()
    lifecycle = TicketLifecycle(tickets, events=events, metrics=metrics)
    dispatcher = AutomationDispatcher(
        tickets,
        lifecycle,
        comments,
        PriorityEscalationEvaluator(tickets, events=events),
        notifier,
        sla_policy=sla_policy,
        settings=settings.automation,
        deadline_evaluator=deadline_evaluator,
    )
    runner = RetryableTaskRunner(
        dispatcher,
        executions,
        LoggingErrorReporter(),
        policy=RetryPolicy.from_settings(settings.automation),
        events=events,
        metrics=metrics,
    )
    return HelpdeskServices(
        events=events,
        metrics=metrics,
        tickets=tickets,
        comments=comments,
        executions=executions,
        sla_policy=sla_policy,
        deadline_evaluator=deadline_evaluator,
        lifecycle=lifecycle,
        dispatcher=dispatcher,
        runner=runner,
    )
