"""Scheduled automation: task dispatch, escalation rules and retrying execution."""

from .dispatcher import AutomationDispatcher
from .repository import AutomationExecution, AutomationExecutionRepository
from .rules import PriorityEscalationEvaluator
from .runner import ExecutionStatus, PermanentTaskFailure, RetryableTaskRunner, RetryPolicy, TaskExecution
from .tasks import AutomationOutcome, AutomationTask, AutomationTaskType, OutcomeReason, OutcomeStatus

__all__ = [
    "AutomationDispatcher",
    "AutomationExecution",
    "AutomationExecutionRepository",
    "AutomationOutcome",
    "AutomationTask",
    "AutomationTaskType",
    "ExecutionStatus",
    "OutcomeReason",
    "OutcomeStatus",
    "PermanentTaskFailure",
    "PriorityEscalationEvaluator",
    "RetryPolicy",
    "RetryableTaskRunner",
    "TaskExecution",
]
