from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.dependencies.services import get_services
from helpdesk.services import HelpdeskServices
from helpdesk.sla import SlaTargetStatus
from helpdesk.tickets import InvalidTicketTransitionError, Ticket, TicketNotFoundError, TicketStatus
from helpdesk.tickets.lifecycle import utcnow
from helpdesk.tickets.models import TicketPriority, TicketType

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus
    actor: str | None = Field(default=None, max_length=255)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    subject: str
    type: TicketType
    priority: TicketPriority
    status: TicketStatus
    assignee_id: str | None
    created_at: datetime
    updated_at: datetime
    first_response_at: datetime | None
    resolved_at: datetime | None
    closed_at: datetime | None


class SlaTargetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    due_at: datetime | None
    status: str
    overdue: bool
    percentage: float | None


class TicketSlaResponse(BaseModel):
    ticket_id: str
    status: TicketStatus
    first_response: SlaTargetResponse
    resolution: SlaTargetResponse
    breached: bool
    breach_type: str | None


ServicesDep = Annotated[HelpdeskServices, Depends(get_services)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_target(target: SlaTargetStatus) -> SlaTargetResponse:
    return SlaTargetResponse.model_validate(target)


@router.get("/{ticket_id}/sla", response_model=TicketSlaResponse)
async def get_ticket_sla(ticket_id: str, services: ServicesDep) -> TicketSlaResponse:
    try:
        ticket = await services.lifecycle.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    now = utcnow()
    deadlines = services.sla_policy.deadlines_for(ticket)
    compliance = services.deadline_evaluator.compliance(ticket, deadlines, now)
    return TicketSlaResponse(
        ticket_id=ticket.id,
        status=ticket.status,
        first_response=_to_target(compliance.first_response),
        resolution=_to_target(compliance.resolution),
        breached=compliance.is_breached,
        breach_type=services.deadline_evaluator.breach_type(ticket, deadlines, now),
    )


@router.post("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: str,
    payload: TicketStatusChangeRequest,
    services: ServicesDep,
) -> TicketResponse:
    try:
        ticket = await services.lifecycle.change_status(ticket_id, new_status=payload.status, actor=payload.actor)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTicketTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _to_response(ticket)
