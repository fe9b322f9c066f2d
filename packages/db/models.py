"""SQLModel table definitions for the helpdesk data layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class TicketTable(SQLModel, table=True):
    """Ticket records tracked through the lifecycle."""

    __tablename__ = "tickets"

    id: str = Field(primary_key=True, index=True)
    subject: str = Field(sa_column=Column(String(255), nullable=False))
    type: str = Field(sa_column=Column(String(50), nullable=False))
    priority: str = Field(sa_column=Column(String(50), nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    assignee_id: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    first_response_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    resolved_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    closed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


class TicketCommentTable(SQLModel, table=True):
    """Comments attached to a ticket, including automation annotations."""

    __tablename__ = "ticket_comments"

    id: str = Field(primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    body: str = Field(sa_column=Column(Text, nullable=False))
    is_internal: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    author_ref: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class AutomationExecutionTable(SQLModel, table=True):
    """Execution state of an automation task, kept for manual inspection of failures."""

    __tablename__ = "automation_executions"

    task_id: str = Field(primary_key=True, index=True)
    ticket_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    task_type: str = Field(sa_column=Column(String(50), nullable=False))
    parameters: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    attempt: int = Field(default=1, sa_column=Column(Integer, nullable=False))
    last_error: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
