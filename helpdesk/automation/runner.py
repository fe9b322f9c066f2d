"""Bounded-retry execution of automation tasks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Awaitable, Callable, Sequence

from opentelemetry import trace

from helpdesk.core.config import AutomationSettings
from helpdesk.events import AutomationProcessed, EventBus
from helpdesk.metrics import MetricsRegistry, register_default_metrics
from helpdesk.ports import ErrorReporter, ExecutionRecorder
from helpdesk.tickets.lifecycle import HelpdeskError

from .dispatcher import AutomationDispatcher
from .tasks import AutomationOutcome, AutomationTask, OutcomeStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PermanentTaskFailure(HelpdeskError):
    """An automation task failed on every allowed attempt."""

    def __init__(self, task: AutomationTask, attempts: int, last_error: str) -> None:
        super().__init__(
            f"Automation task {task.id} ({task.task_type}) for ticket {task.ticket_id} "
            f"failed after {attempts} attempts: {last_error}"
        )
        self.task = task
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: Sequence[float] = (60.0, 180.0, 600.0)
    attempt_timeout_seconds: float = 300.0

    @classmethod
    def from_settings(cls, settings: AutomationSettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            backoff_seconds=tuple(settings.backoff_seconds),
            attempt_timeout_seconds=settings.attempt_timeout_seconds,
        )

    def delay_after(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""

        if not self.backoff_seconds:
            return 0.0
        index = min(attempt - 1, len(self.backoff_seconds) - 1)
        return float(self.backoff_seconds[index])


class ExecutionStatus(str, Enum):
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(slots=True)
class TaskExecution:
    """Result of driving one task through the runner."""

    task: AutomationTask
    status: ExecutionStatus
    attempts: int
    outcome: AutomationOutcome | None = None
    last_error: str | None = None
    errors: list[str] = field(default_factory=list)


def _describe(error: BaseException, timeout: float) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return f"Attempt timed out after {timeout:g}s"
    return str(error) or type(error).__name__


class RetryableTaskRunner:
    """Execute tasks through the dispatcher with retry, backoff and a per-attempt timeout.

    Any exception from the dispatcher or its collaborators counts as a
    transient failure. Once attempts are exhausted the execution is recorded
    as failed and reported; it is never retried again.
    """

    def __init__(
        self,
        dispatcher: AutomationDispatcher,
        recorder: ExecutionRecorder,
        reporter: ErrorReporter,
        *,
        policy: RetryPolicy | None = None,
        events: EventBus | None = None,
        metrics: MetricsRegistry | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._dispatcher = dispatcher
        self._recorder = recorder
        self._reporter = reporter
        self._policy = policy or RetryPolicy()
        self._events = events or EventBus()
        self._metrics = metrics or register_default_metrics()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(self, task: AutomationTask) -> TaskExecution:
        labels = {"task_type": task.task_type}
        attempt = max(1, task.attempt)
        errors: list[str] = []

        while True:
            current = task.for_attempt(attempt)
            try:
                outcome = await self._attempt(current)
            except Exception as exc:
                message = _describe(exc, self._policy.attempt_timeout_seconds)
                errors.append(message)
                if attempt >= self._policy.max_attempts:
                    return await self._fail(current, exc, message, errors)

                delay = self._policy.delay_after(attempt)
                logger.warning(
                    "Automation task %s attempt %d/%d failed: %s; retrying in %.0fs",
                    task.id,
                    attempt,
                    self._policy.max_attempts,
                    message,
                    delay,
                    extra={"ticket_id": task.ticket_id, "task_id": task.id},
                )
                await self._recorder.mark_retry(current, message, attempt)
                self._metrics.counter("automation_task_retries_total").inc(labels=labels)
                await self._sleep(delay)
                attempt += 1
                continue

            if outcome.status is OutcomeStatus.REJECTED:
                reason = outcome.reason.value if outcome.reason else "unknown"
                logger.warning(
                    "Automation task %s rejected (%s): task_type=%r",
                    task.id,
                    reason,
                    task.task_type,
                    extra={"ticket_id": task.ticket_id, "task_id": task.id},
                )
                await self._recorder.mark_rejected(current, reason)
                self._metrics.counter("automation_tasks_total").inc(
                    labels={**labels, "status": ExecutionStatus.REJECTED.value}
                )
                return TaskExecution(
                    task=current, status=ExecutionStatus.REJECTED, attempts=attempt, outcome=outcome, errors=errors
                )

            await self._recorder.mark_succeeded(current, attempt)
            self._metrics.counter("automation_tasks_total").inc(
                labels={**labels, "status": ExecutionStatus.SUCCEEDED.value}
            )
            self._events.publish(
                AutomationProcessed(
                    task=current, outcome=outcome, attempts=attempt, warnings=tuple(outcome.warnings)
                )
            )
            logger.info(
                "Automation task %s processed: %s%s",
                task.id,
                outcome.status.value,
                f" ({outcome.reason.value})" if outcome.reason else "",
            )
            return TaskExecution(
                task=current, status=ExecutionStatus.SUCCEEDED, attempts=attempt, outcome=outcome, errors=errors
            )

    async def _attempt(self, task: AutomationTask) -> AutomationOutcome:
        attributes = {"ticket.id": task.ticket_id, "task.type": task.task_type, "task.attempt": task.attempt}
        with tracer.start_as_current_span("automation.task", attributes=attributes):
            start = perf_counter()
            try:
                return await asyncio.wait_for(
                    self._dispatcher.run(task), timeout=self._policy.attempt_timeout_seconds
                )
            finally:
                self._metrics.distribution("automation_task_duration_seconds").observe(
                    perf_counter() - start, labels={"task_type": task.task_type}
                )

    async def _fail(
        self, task: AutomationTask, error: BaseException, message: str, errors: list[str]
    ) -> TaskExecution:
        logger.error(
            "Automation task %s for ticket %s failed permanently after %d attempts: %s",
            task.id,
            task.ticket_id,
            task.attempt,
            message,
            extra={"ticket_id": task.ticket_id, "task_id": task.id},
        )
        await self._recorder.mark_failed(task, message, task.attempt)
        self._metrics.counter("automation_task_failures_total").inc(labels={"task_type": task.task_type})
        self._metrics.counter("automation_tasks_total").inc(
            labels={"task_type": task.task_type, "status": ExecutionStatus.FAILED.value}
        )
        failure = PermanentTaskFailure(task, task.attempt, message)
        failure.__cause__ = error
        self._reporter.report(failure)
        return TaskExecution(
            task=task, status=ExecutionStatus.FAILED, attempts=task.attempt, last_error=message, errors=errors
        )
