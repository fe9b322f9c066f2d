import pytest

from conftest import NOW, InMemoryTicketStore, make_ticket
from helpdesk.automation import PriorityEscalationEvaluator
from helpdesk.events import EventBus, TicketEscalated
from helpdesk.tickets import TicketPriority, TicketStatus


@pytest.mark.asyncio
async def test_escalation_raises_priority_one_step():
    ticket = make_ticket(priority=TicketPriority.NORMAL)
    store = InMemoryTicketStore(ticket)
    events = EventBus()
    published = []
    events.subscribe(TicketEscalated, published.append)
    evaluator = PriorityEscalationEvaluator(store, events=events, clock=lambda: NOW)

    await evaluator.evaluate(ticket, "escalation_check")

    assert store.tickets["t-1"].priority is TicketPriority.HIGH
    assert published == [
        TicketEscalated(
            ticket_id="t-1",
            from_priority=TicketPriority.NORMAL,
            to_priority=TicketPriority.HIGH,
            trigger="escalation_check",
            occurred_at=NOW,
        )
    ]


@pytest.mark.asyncio
async def test_urgent_ticket_is_not_saved_again():
    ticket = make_ticket(priority=TicketPriority.URGENT)
    store = InMemoryTicketStore(ticket)

    await PriorityEscalationEvaluator(store).evaluate(ticket, "escalation_check")

    assert store.saved == []


@pytest.mark.asyncio
async def test_unrelated_trigger_is_ignored():
    ticket = make_ticket(priority=TicketPriority.LOW)
    store = InMemoryTicketStore(ticket)

    await PriorityEscalationEvaluator(store).evaluate(ticket, "ticket_created")

    assert store.saved == []
    assert ticket.priority is TicketPriority.LOW


@pytest.mark.asyncio
async def test_cancel_after_snapshot_is_not_undone(lifecycle, store):
    store.tickets["t-1"] = make_ticket(priority=TicketPriority.NORMAL)
    snapshot = await store.find("t-1")
    await lifecycle.change_status("t-1", new_status=TicketStatus.CANCELLED)
    saves_before = len(store.saved)

    await PriorityEscalationEvaluator(store, clock=lambda: NOW).evaluate(snapshot, "escalation_check")

    assert store.tickets["t-1"].status is TicketStatus.CANCELLED
    assert store.tickets["t-1"].priority is TicketPriority.NORMAL
    assert len(store.saved) == saves_before
    assert store.priority_writes == []


@pytest.mark.asyncio
async def test_escalation_writes_only_priority_over_concurrent_status_change(lifecycle, store):
    store.tickets["t-1"] = make_ticket(priority=TicketPriority.LOW)
    snapshot = await store.find("t-1")
    await lifecycle.change_status("t-1", new_status=TicketStatus.PENDING)

    await PriorityEscalationEvaluator(store, clock=lambda: NOW).evaluate(snapshot, "escalation_check")

    assert store.tickets["t-1"].status is TicketStatus.PENDING
    assert store.tickets["t-1"].priority is TicketPriority.NORMAL
    assert store.priority_writes == [("t-1", TicketPriority.NORMAL)]
    assert snapshot.priority is TicketPriority.NORMAL
