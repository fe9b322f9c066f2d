from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.automation import AutomationTask
from helpdesk.dependencies.services import get_services
from helpdesk.services import HelpdeskServices

router = APIRouter(prefix="/automation", tags=["automation"])


class AutomationTaskRequest(BaseModel):
    ticket_id: str = Field(..., min_length=1)
    task_type: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


class AutomationTaskAccepted(BaseModel):
    task_id: str
    ticket_id: str
    task_type: str
    status: str = "pending"


class AutomationExecutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: str
    ticket_id: str
    task_type: str
    parameters: dict[str, Any]
    status: str
    attempt: int
    last_error: str | None
    created_at: datetime
    updated_at: datetime


ServicesDep = Annotated[HelpdeskServices, Depends(get_services)]


@router.post("/tasks", response_model=AutomationTaskAccepted, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_task(
    payload: AutomationTaskRequest,
    background_tasks: BackgroundTasks,
    services: ServicesDep,
) -> AutomationTaskAccepted:
    task = AutomationTask(ticket_id=payload.ticket_id, task_type=payload.task_type, parameters=payload.parameters)
    await services.executions.mark_pending(task)
    background_tasks.add_task(services.runner.execute, task)
    return AutomationTaskAccepted(task_id=task.id, ticket_id=task.ticket_id, task_type=task.task_type)


@router.get("/tasks/{task_id}", response_model=AutomationExecutionResponse)
async def get_task(task_id: str, services: ServicesDep) -> AutomationExecutionResponse:
    execution = await services.executions.get(task_id)
    if execution is None:
        raise HTTPException(status_code=404, detail=f"Automation task {task_id} not found")
    return AutomationExecutionResponse.model_validate(execution)
