from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from conftest import NOW, make_ticket
from helpdesk.automation import AutomationExecutionRepository, AutomationTask
from helpdesk.tickets import TicketPriority, TicketStatus
from helpdesk.tickets.repository import CommentRepository, TicketRepository


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.mark.asyncio
async def test_ensure_schema_creates_tables(engine: AsyncEngine):
    repository = TicketRepository(async_sessionmaker(engine, expire_on_commit=False), engine=engine)

    await repository.ensure_schema()

    async with engine.begin() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(sa_inspect(sync_conn).get_table_names()))

    assert {"tickets", "ticket_comments", "automation_executions"} <= tables


@pytest.mark.asyncio
async def test_ensure_schema_requires_engine(session_factory: async_sessionmaker):
    with pytest.raises(RuntimeError):
        await TicketRepository(session_factory).ensure_schema()


@pytest.mark.asyncio
async def test_save_then_find_round_trips_ticket(session_factory: async_sessionmaker):
    repository = TicketRepository(session_factory)
    ticket = make_ticket(priority=TicketPriority.HIGH, assignee_id="agent-7")

    await repository.save(ticket)
    ticket.status = TicketStatus.RESOLVED
    ticket.resolved_at = NOW
    ticket.updated_at = NOW
    await repository.save(ticket)

    loaded = await repository.find("t-1")

    assert loaded is not None
    assert loaded.status is TicketStatus.RESOLVED
    assert loaded.priority is TicketPriority.HIGH
    assert loaded.assignee_id == "agent-7"
    assert loaded.resolved_at == NOW
    assert loaded.updated_at.tzinfo is not None
    assert loaded.last_comment_at is None
    assert await repository.find("missing") is None


@pytest.mark.asyncio
async def test_find_reports_latest_comment_time(session_factory: async_sessionmaker):
    tickets = TicketRepository(session_factory)
    comments = CommentRepository(session_factory)
    await tickets.save(make_ticket(updated_at=NOW - timedelta(days=20)))

    first = await comments.append("t-1", "Looking into it", is_internal=False, author_ref="agent-7")
    second = await comments.append("t-1", "Escalated internally", is_internal=True)

    loaded = await tickets.find("t-1")
    assert loaded.last_comment_at == second.created_at
    assert loaded.last_activity_at == second.created_at

    stored = await comments.list_comments("t-1")
    assert [comment.id for comment in stored] == [first.id, second.id]
    assert stored[0].author_ref == "agent-7"
    assert stored[1].is_internal is True


@pytest.mark.asyncio
async def test_execution_state_follows_runner_callbacks(session_factory: async_sessionmaker):
    repository = AutomationExecutionRepository(session_factory)
    task = AutomationTask(ticket_id="t-1", task_type="reminder", parameters={"message": "Ping"}, id="task-1")

    await repository.mark_pending(task)
    pending = await repository.get("task-1")
    assert pending.status == "pending"
    assert pending.parameters == {"message": "Ping"}

    await repository.mark_retry(task, "db gone", 1)
    retrying = await repository.get("task-1")
    assert (retrying.status, retrying.attempt, retrying.last_error) == ("retrying", 1, "db gone")

    await repository.mark_failed(task.for_attempt(3), "db still gone", 3)
    failed = await repository.get("task-1")
    assert (failed.status, failed.attempt, failed.last_error) == ("failed", 3, "db still gone")
    assert failed.created_at == pending.created_at

    assert await repository.get("unknown") is None


@pytest.mark.asyncio
async def test_success_clears_last_error(session_factory: async_sessionmaker):
    repository = AutomationExecutionRepository(session_factory)
    task = AutomationTask(ticket_id="t-1", task_type="follow_up", id="task-2")

    await repository.mark_retry(task, "timeout", 1)
    await repository.mark_succeeded(task, 2)

    execution = await repository.get("task-2")
    assert execution.status == "succeeded"
    assert execution.attempt == 2
    assert execution.last_error is None


@pytest.mark.asyncio
async def test_save_priority_leaves_status_untouched(session_factory: async_sessionmaker):
    repository = TicketRepository(session_factory)
    await repository.save(make_ticket(status=TicketStatus.CANCELLED, closed_at=NOW))

    assert await repository.save_priority("t-1", TicketPriority.URGENT, updated_at=NOW) is True
    assert await repository.save_priority("missing", TicketPriority.URGENT, updated_at=NOW) is False

    loaded = await repository.find("t-1")
    assert loaded.priority is TicketPriority.URGENT
    assert loaded.status is TicketStatus.CANCELLED
    assert loaded.updated_at == NOW


@pytest.mark.asyncio
async def test_rejected_task_is_acknowledged(session_factory: async_sessionmaker):
    repository = AutomationExecutionRepository(session_factory)
    task = AutomationTask(ticket_id="t-1", task_type="teleport", id="task-3")

    await repository.mark_pending(task)
    await repository.mark_rejected(task, "unknown_task_type")

    execution = await repository.get("task-3")
    assert execution.status == "rejected"
    assert execution.last_error == "unknown_task_type"
