from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from helpdesk.tickets.models import Ticket

from .policy import FIRST_RESPONSE, RESOLUTION, SlaDeadlines

PENDING = "pending"
MET = "met"
BREACHED = "breached"


@dataclass(frozen=True, slots=True)
class SlaTargetStatus:
    """Compliance of one SLA kind at evaluation time."""

    due_at: datetime | None
    status: str
    overdue: bool
    percentage: float | None


@dataclass(frozen=True, slots=True)
class SlaCompliance:
    first_response: SlaTargetStatus
    resolution: SlaTargetStatus

    @property
    def is_breached(self) -> bool:
        return (
            self.first_response.overdue
            or self.resolution.overdue
            or BREACHED in (self.first_response.status, self.resolution.status)
        )


class DeadlineEvaluator:
    """Pure breach predicates. A missing deadline is never overdue."""

    def is_first_response_overdue(self, ticket: Ticket, deadlines: SlaDeadlines, now: datetime) -> bool:
        return _overdue(ticket.first_response_at, deadlines.first_response_due_at, now)

    def is_resolution_overdue(self, ticket: Ticket, deadlines: SlaDeadlines, now: datetime) -> bool:
        return _overdue(ticket.resolved_at, deadlines.resolution_due_at, now)

    def breach_type(self, ticket: Ticket, deadlines: SlaDeadlines, now: datetime) -> str | None:
        if self.is_first_response_overdue(ticket, deadlines, now):
            return FIRST_RESPONSE
        if self.is_resolution_overdue(ticket, deadlines, now):
            return RESOLUTION
        return None

    def compliance(self, ticket: Ticket, deadlines: SlaDeadlines, now: datetime) -> SlaCompliance:
        return SlaCompliance(
            first_response=_target_status(
                ticket.created_at, ticket.first_response_at, deadlines.first_response_due_at, now
            ),
            resolution=_target_status(ticket.created_at, ticket.resolved_at, deadlines.resolution_due_at, now),
        )


def _overdue(met_at: datetime | None, due_at: datetime | None, now: datetime) -> bool:
    return met_at is None and due_at is not None and now > due_at


def _target_status(
    started_at: datetime, met_at: datetime | None, due_at: datetime | None, now: datetime
) -> SlaTargetStatus:
    if due_at is None:
        return SlaTargetStatus(due_at=None, status=PENDING, overdue=False, percentage=None)

    if met_at is not None:
        status = MET if met_at <= due_at else BREACHED
    else:
        status = PENDING

    window = (due_at - started_at).total_seconds()
    if window <= 0:
        percentage = 0.0
    else:
        used = ((met_at or now) - started_at).total_seconds()
        percentage = round(max(0.0, used / window * 100), 2)

    return SlaTargetStatus(
        due_at=due_at,
        status=status,
        overdue=_overdue(met_at, due_at, now),
        percentage=percentage,
    )
