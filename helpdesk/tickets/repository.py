from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from packages.db.models import TicketCommentTable, TicketTable

from .models import Ticket, TicketComment, TicketPriority, TicketType
from .state import TicketStatus


class TicketRepository:
    """Ticket store backed by the ``tickets`` and ``ticket_comments`` tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def find(self, ticket_id: str) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
            if row is None:
                return None
            result = await session.execute(
                select(func.max(TicketCommentTable.created_at)).where(TicketCommentTable.ticket_id == ticket_id)
            )
            last_comment_at = result.scalar_one_or_none()
        return self._table_to_ticket(row, last_comment_at)

    async def save(self, ticket: Ticket) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(TicketTable, ticket.id)
                if row is None:
                    session.add(self._ticket_to_table(ticket))
                    return
                row.subject = ticket.subject
                row.type = ticket.type.value
                row.priority = ticket.priority.value
                row.status = ticket.status.value
                row.assignee_id = ticket.assignee_id
                row.updated_at = ticket.updated_at
                row.first_response_at = ticket.first_response_at
                row.resolved_at = ticket.resolved_at
                row.closed_at = ticket.closed_at

    async def save_priority(self, ticket_id: str, priority: TicketPriority, *, updated_at: datetime) -> bool:
        """Write only ``priority`` and ``updated_at``; returns ``False`` when the ticket is gone."""

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(TicketTable)
                    .where(TicketTable.id == ticket_id)
                    .values(priority=priority.value, updated_at=updated_at)
                )
        return result.rowcount > 0

    @staticmethod
    def _ticket_to_table(ticket: Ticket) -> TicketTable:
        return TicketTable(
            id=ticket.id,
            subject=ticket.subject,
            type=ticket.type.value,
            priority=ticket.priority.value,
            status=ticket.status.value,
            assignee_id=ticket.assignee_id,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            first_response_at=ticket.first_response_at,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
        )

    @staticmethod
    def _table_to_ticket(row: TicketTable, last_comment_at: datetime | None = None) -> Ticket:
        return Ticket(
            id=row.id,
            subject=row.subject,
            type=TicketType(row.type),
            priority=TicketPriority(row.priority),
            status=TicketStatus(row.status),
            assignee_id=row.assignee_id,
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
            first_response_at=_optional_datetime(row.first_response_at),
            resolved_at=_optional_datetime(row.resolved_at),
            closed_at=_optional_datetime(row.closed_at),
            last_comment_at=_optional_datetime(last_comment_at),
        )


class CommentRepository:
    """Appends comments to ``ticket_comments``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(
        self,
        ticket_id: str,
        body: str,
        *,
        is_internal: bool,
        author_ref: str | None = None,
    ) -> TicketComment:
        comment = TicketComment(
            id=str(uuid.uuid4()),
            ticket_id=ticket_id,
            body=body,
            is_internal=is_internal,
            author_ref=author_ref,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    TicketCommentTable(
                        id=comment.id,
                        ticket_id=comment.ticket_id,
                        body=comment.body,
                        is_internal=comment.is_internal,
                        author_ref=comment.author_ref,
                        created_at=comment.created_at,
                    )
                )
        return comment

    async def list_comments(self, ticket_id: str) -> Sequence[TicketComment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketCommentTable)
                .where(TicketCommentTable.ticket_id == ticket_id)
                .order_by(TicketCommentTable.created_at.asc())
            )
            rows = result.scalars().all()
        return [
            TicketComment(
                id=row.id,
                ticket_id=row.ticket_id,
                body=row.body,
                is_internal=row.is_internal,
                author_ref=row.author_ref,
                created_at=_ensure_datetime(row.created_at),
            )
            for row in rows
        ]


def _ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")


def _optional_datetime(value: datetime | None) -> datetime | None:
    return None if value is None else _ensure_datetime(value)
