"""Run scheduled automation tasks against the current state of a ticket."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from helpdesk.core.config import AutomationSettings
from helpdesk.ports import AssigneeNotifier, AutomationRuleEvaluator, CommentAppender, TicketStore
from helpdesk.sla.evaluator import DeadlineEvaluator
from helpdesk.sla.policy import SlaPolicy
from helpdesk.tickets.lifecycle import Clock, InvalidTicketTransitionError, TicketLifecycle, utcnow
from helpdesk.tickets.models import Ticket
from helpdesk.tickets.state import TicketStatus

from .tasks import AutomationOutcome, AutomationTask, AutomationTaskType, OutcomeReason

logger = logging.getLogger(__name__)

ESCALATION_TRIGGER = "escalation_check"
SYSTEM_AUTHOR = "system"

DEFAULT_FOLLOW_UP_MESSAGE = (
    "This ticket has been inactive for {days} days. Please provide an update or it may be closed."
)
DEFAULT_REMINDER_MESSAGE = "Reminder: This ticket requires attention."
CLOSED_AFTER_DAYS = "closed_after_days"
AUTO_CLOSE_MESSAGE = "Ticket automatically closed after {days} days of inactivity."


def _flag(parameters: Mapping[str, Any], name: str, default: bool) -> bool:
    value = parameters.get(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in {"0", "false", "no", "off", ""}
    return bool(value)


class InvalidTaskParameters(ValueError):
    """A task parameter cannot be used; retrying would not help."""


def _days(parameters: Mapping[str, Any], default: int) -> int:
    value = parameters.get("days")
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidTaskParameters(f"days must be a whole number, got {value!r}")
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise InvalidTaskParameters(f"days must be a whole number, got {value!r}") from None
    if days < 0:
        raise InvalidTaskParameters(f"days must not be negative, got {days}")
    return days


class AutomationDispatcher:
    """Dispatch one :class:`AutomationTask` to its handler.

    The ticket is loaded fresh for every run and each handler re-checks its
    status guard on that snapshot, since a task may have been queued before a
    concurrent transition made the ticket terminal.
    """

    def __init__(
        self,
        store: TicketStore,
        lifecycle: TicketLifecycle,
        comments: CommentAppender,
        rule_evaluator: AutomationRuleEvaluator,
        notifier: AssigneeNotifier,
        *,
        sla_policy: SlaPolicy,
        settings: AutomationSettings | None = None,
        deadline_evaluator: DeadlineEvaluator | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._lifecycle = lifecycle
        self._comments = comments
        self._rule_evaluator = rule_evaluator
        self._notifier = notifier
        self._sla_policy = sla_policy
        self._settings = settings or AutomationSettings()
        self._deadlines = deadline_evaluator or DeadlineEvaluator()
        self._clock = clock
        self._handlers = {
            AutomationTaskType.FOLLOW_UP: self._handle_follow_up,
            AutomationTaskType.ESCALATION_CHECK: self._handle_escalation_check,
            AutomationTaskType.REMINDER: self._handle_reminder,
            AutomationTaskType.AUTO_CLOSE_CHECK: self._handle_auto_close_check,
        }

    async def run(self, task: AutomationTask) -> AutomationOutcome:
        task_type = AutomationTaskType.parse(task.task_type)
        if task_type is None:
            return AutomationOutcome.rejected(OutcomeReason.UNKNOWN_TASK_TYPE)

        ticket = await self._store.find(task.ticket_id)
        if ticket is None:
            logger.warning("Automation task skipped: ticket %s not found", task.ticket_id)
            return AutomationOutcome.skipped(OutcomeReason.NOT_FOUND)

        handler = self._handlers[task_type]
        try:
            return await handler(ticket, task)
        except InvalidTaskParameters as exc:
            logger.warning("Automation task %s rejected: %s", task.id, exc)
            return AutomationOutcome.rejected(OutcomeReason.INVALID_PARAMETERS)

    def days_since_activity(self, ticket: Ticket, now: datetime | None = None) -> int:
        elapsed = (now or self._clock()) - ticket.last_activity_at
        return max(0, elapsed.days)

    async def _handle_follow_up(self, ticket: Ticket, task: AutomationTask) -> AutomationOutcome:
        parameters = task.parameters or {}
        if ticket.status.is_terminal():
            return AutomationOutcome.skipped(OutcomeReason.TERMINAL_STATUS)

        days = self.days_since_activity(ticket)
        threshold = _days(parameters, self._settings.follow_up_inactivity_days)
        if days < threshold:
            return AutomationOutcome.skipped(OutcomeReason.NOT_INACTIVE)

        message = parameters.get("message") or DEFAULT_FOLLOW_UP_MESSAGE.format(days=days)
        await self._comments.append(ticket.id, message, is_internal=False, author_ref=None)
        outcome = AutomationOutcome.completed("comment_added")

        if _flag(parameters, "notify_assignee", True):
            try:
                await self._notifier.notify_assignee(ticket, message)
            except Exception as exc:
                logger.warning("Assignee notification failed for ticket %s: %s", ticket.id, exc)
                outcome.warnings.append(f"notify_assignee failed: {exc}")
            else:
                outcome.actions.append("assignee_notified")
        return outcome

    async def _handle_escalation_check(self, ticket: Ticket, task: AutomationTask) -> AutomationOutcome:
        if ticket.status.is_terminal():
            return AutomationOutcome.skipped(OutcomeReason.TERMINAL_STATUS)

        now = self._clock()
        deadlines = self._sla_policy.deadlines_for(ticket)
        should_escalate = self._deadlines.is_first_response_overdue(
            ticket, deadlines, now
        ) or self._deadlines.is_resolution_overdue(ticket, deadlines, now)
        if not should_escalate:
            return AutomationOutcome.skipped(OutcomeReason.NOT_OVERDUE)

        logger.info(
            "SLA breach detected for ticket %s (%s); evaluating escalation rules",
            ticket.id,
            self._deadlines.breach_type(ticket, deadlines, now),
        )
        await self._rule_evaluator.evaluate(ticket, ESCALATION_TRIGGER)
        return AutomationOutcome.completed("escalation_evaluated")

    async def _handle_reminder(self, ticket: Ticket, task: AutomationTask) -> AutomationOutcome:
        parameters = task.parameters or {}
        if ticket.status.is_terminal():
            return AutomationOutcome.skipped(OutcomeReason.TERMINAL_STATUS)

        message = parameters.get("message") or DEFAULT_REMINDER_MESSAGE
        await self._comments.append(
            ticket.id,
            message,
            is_internal=_flag(parameters, "is_internal", True),
            author_ref=SYSTEM_AUTHOR,
        )
        return AutomationOutcome.completed("comment_added")

    async def _handle_auto_close_check(self, ticket: Ticket, task: AutomationTask) -> AutomationOutcome:
        days = task.progress.get(CLOSED_AFTER_DAYS)
        if days is None:
            if ticket.status is not TicketStatus.RESOLVED:
                return AutomationOutcome.skipped(OutcomeReason.NOT_RESOLVED)

            days = self.days_since_activity(ticket)
            if days < _days(task.parameters or {}, self._settings.auto_close_days):
                return AutomationOutcome.skipped(OutcomeReason.NOT_INACTIVE)

            try:
                await self._lifecycle.transition(ticket, TicketStatus.CLOSED, actor=SYSTEM_AUTHOR)
            except InvalidTicketTransitionError as exc:
                logger.info("Auto-close of ticket %s skipped: %s", ticket.id, exc)
                return AutomationOutcome.skipped(OutcomeReason.STALE_STATUS)
            task.progress[CLOSED_AFTER_DAYS] = days
        else:
            logger.info("Ticket %s was closed by an earlier attempt; adding the audit comment", ticket.id)

        await self._comments.append(
            ticket.id,
            AUTO_CLOSE_MESSAGE.format(days=days),
            is_internal=True,
            author_ref=None,
        )
        return AutomationOutcome.completed("ticket_closed", "comment_added")
