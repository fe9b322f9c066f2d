from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from packages.db.models import AutomationExecutionTable

from .tasks import AutomationTask

PENDING = "pending"
RETRYING = "retrying"
SUCCEEDED = "succeeded"
FAILED = "failed"
REJECTED = "rejected"


@dataclass(slots=True)
class AutomationExecution:
    """Persisted automation state of a task."""

    task_id: str
    ticket_id: str
    task_type: str
    parameters: Mapping[str, Any]
    status: str
    attempt: int
    last_error: str | None
    created_at: datetime
    updated_at: datetime


class AutomationExecutionRepository:
    """Records retry and failure state of automation tasks in ``automation_executions``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def mark_pending(self, task: AutomationTask) -> None:
        await self._upsert(task, status=PENDING, attempt=task.attempt, last_error=None)

    async def mark_retry(self, task: AutomationTask, error: str, attempt: int) -> None:
        await self._upsert(task, status=RETRYING, attempt=attempt, last_error=error)

    async def mark_failed(self, task: AutomationTask, error: str, attempts: int) -> None:
        await self._upsert(task, status=FAILED, attempt=attempts, last_error=error)

    async def mark_succeeded(self, task: AutomationTask, attempts: int) -> None:
        await self._upsert(task, status=SUCCEEDED, attempt=attempts, last_error=None)

    async def mark_rejected(self, task: AutomationTask, reason: str) -> None:
        await self._upsert(task, status=REJECTED, attempt=task.attempt, last_error=reason)

    async def get(self, task_id: str) -> AutomationExecution | None:
        async with self._session_factory() as session:
            row = await session.get(AutomationExecutionTable, task_id)
        if row is None:
            return None
        return AutomationExecution(
            task_id=row.task_id,
            ticket_id=row.ticket_id,
            task_type=row.task_type,
            parameters=dict(row.parameters or {}),
            status=row.status,
            attempt=row.attempt,
            last_error=row.last_error,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def _upsert(self, task: AutomationTask, *, status: str, attempt: int, last_error: str | None) -> None:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(AutomationExecutionTable, task.id)
                if row is None:
                    session.add(
                        AutomationExecutionTable(
                            task_id=task.id,
                            ticket_id=task.ticket_id,
                            task_type=task.task_type,
                            parameters=dict(task.parameters or {}),
                            status=status,
                            attempt=attempt,
                            last_error=last_error,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                    return
                row.status = status
                row.attempt = attempt
                row.last_error = last_error
                row.updated_at = now
