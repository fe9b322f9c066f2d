from datetime import timedelta

import pytest

from conftest import NOW, make_ticket
from helpdesk.sla import DeadlineEvaluator, SlaDeadlines

DUE = NOW - timedelta(hours=1)


@pytest.fixture
def evaluator():
    return DeadlineEvaluator()


def test_first_response_overdue_after_due_time(evaluator):
    ticket = make_ticket()
    deadlines = SlaDeadlines(first_response_due_at=DUE)

    assert evaluator.is_first_response_overdue(ticket, deadlines, NOW)
    assert not evaluator.is_first_response_overdue(ticket, deadlines, DUE)


@pytest.mark.parametrize("elapsed_days", [0, 1, 30, 365])
def test_first_response_never_overdue_once_responded(evaluator, elapsed_days):
    ticket = make_ticket(first_response_at=DUE + timedelta(days=1))
    deadlines = SlaDeadlines(first_response_due_at=DUE)

    assert not evaluator.is_first_response_overdue(ticket, deadlines, NOW + timedelta(days=elapsed_days))


def test_resolution_overdue_mirrors_first_response(evaluator):
    deadlines = SlaDeadlines(resolution_due_at=DUE)

    assert evaluator.is_resolution_overdue(make_ticket(), deadlines, NOW)
    assert not evaluator.is_resolution_overdue(make_ticket(resolved_at=NOW), deadlines, NOW)


def test_missing_deadline_is_never_overdue(evaluator):
    ticket = make_ticket()
    far_future = NOW + timedelta(days=10_000)

    assert not evaluator.is_first_response_overdue(ticket, SlaDeadlines(), far_future)
    assert not evaluator.is_resolution_overdue(ticket, SlaDeadlines(), far_future)
    assert evaluator.breach_type(ticket, SlaDeadlines(), far_future) is None


def test_breach_type_prefers_first_response(evaluator):
    ticket = make_ticket()
    both = SlaDeadlines(first_response_due_at=DUE, resolution_due_at=DUE)

    assert evaluator.breach_type(ticket, both, NOW) == "first_response"
    assert evaluator.breach_type(ticket, SlaDeadlines(resolution_due_at=DUE), NOW) == "resolution"


def test_compliance_reports_status_and_percentage(evaluator):
    created = NOW - timedelta(hours=4)
    ticket = make_ticket(created_at=created, first_response_at=created + timedelta(hours=1))
    deadlines = SlaDeadlines(
        first_response_due_at=created + timedelta(hours=2),
        resolution_due_at=created + timedelta(hours=8),
    )

    compliance = evaluator.compliance(ticket, deadlines, NOW)

    assert compliance.first_response.status == "met"
    assert compliance.first_response.percentage == pytest.approx(50.0)
    assert compliance.resolution.status == "pending"
    assert compliance.resolution.overdue is False
    assert compliance.resolution.percentage == pytest.approx(50.0)
    assert compliance.is_breached is False


def test_compliance_marks_late_response_as_breached(evaluator):
    created = NOW - timedelta(hours=4)
    ticket = make_ticket(created_at=created, first_response_at=created + timedelta(hours=3))
    deadlines = SlaDeadlines(first_response_due_at=created + timedelta(hours=2))

    compliance = evaluator.compliance(ticket, deadlines, NOW)

    assert compliance.first_response.status == "breached"
    assert compliance.resolution.percentage is None
    assert compliance.is_breached is True
