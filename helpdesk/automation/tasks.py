from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping


class AutomationTaskType(str, Enum):
    """Kinds of scheduled work evaluated against a single ticket."""

    FOLLOW_UP = "follow_up"
    ESCALATION_CHECK = "escalation_check"
    REMINDER = "reminder"
    AUTO_CLOSE_CHECK = "auto_close_check"

    @classmethod
    def parse(cls, value: "AutomationTaskType | str") -> "AutomationTaskType | None":
        try:
            return cls(value)
        except ValueError:
            return None


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    REJECTED = "rejected"


class OutcomeReason(str, Enum):
    NOT_FOUND = "not_found"
    TERMINAL_STATUS = "terminal_status"
    NOT_RESOLVED = "not_resolved"
    NOT_INACTIVE = "not_inactive"
    NOT_OVERDUE = "not_overdue"
    STALE_STATUS = "stale_status"
    UNKNOWN_TASK_TYPE = "unknown_task_type"
    INVALID_PARAMETERS = "invalid_parameters"


@dataclass(slots=True)
class AutomationTask:
    """A unit of automation work queued by an external scheduler.

    ``progress`` records steps a handler has committed. Retries made with
    :meth:`for_attempt` share the same mapping, so a later attempt can finish
    the work without repeating those steps.
    """

    ticket_id: str
    task_type: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    attempt: int = 1
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    progress: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.task_type, AutomationTaskType):
            self.task_type = self.task_type.value

    def for_attempt(self, attempt: int) -> "AutomationTask":
        return replace(self, attempt=attempt)


@dataclass(slots=True)
class AutomationOutcome:
    """What a dispatcher run did to a ticket."""

    status: OutcomeStatus
    reason: OutcomeReason | None = None
    actions: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def completed(cls, *actions: str, warnings: list[str] | None = None) -> "AutomationOutcome":
        return cls(status=OutcomeStatus.COMPLETED, actions=list(actions), warnings=list(warnings or []))

    @classmethod
    def skipped(cls, reason: OutcomeReason) -> "AutomationOutcome":
        return cls(status=OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def rejected(cls, reason: OutcomeReason) -> "AutomationOutcome":
        return cls(status=OutcomeStatus.REJECTED, reason=reason)
