import itertools

import pytest

from helpdesk.tickets.state import TERMINAL_STATUSES, TicketStateMachine, TicketStatus


def test_ticket_state_machine_allows_expected_transitions():
    machine = TicketStateMachine()
    assert machine.is_allowed(TicketStatus.OPEN, TicketStatus.IN_PROGRESS)
    assert machine.is_allowed(TicketStatus.IN_PROGRESS, TicketStatus.PENDING)
    assert machine.is_allowed(TicketStatus.PENDING, TicketStatus.OPEN)
    assert machine.is_allowed(TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED)
    assert machine.is_allowed(TicketStatus.RESOLVED, TicketStatus.CLOSED)
    assert machine.is_allowed(TicketStatus.OPEN, TicketStatus.CANCELLED)


def test_ticket_state_machine_blocks_invalid_transitions():
    machine = TicketStateMachine()
    assert not machine.is_allowed(TicketStatus.CLOSED, TicketStatus.OPEN)
    assert not machine.is_allowed(TicketStatus.RESOLVED, TicketStatus.CANCELLED)
    assert not machine.is_allowed(TicketStatus.PENDING, TicketStatus.CLOSED)


@pytest.mark.parametrize("status", list(TicketStatus))
def test_self_transitions_are_not_edges(status):
    assert not TicketStateMachine().is_allowed(status, status)


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_statuses_have_no_outgoing_edges(status):
    machine = TicketStateMachine()
    assert status.is_terminal()
    assert machine.allowed_targets(status) == []
    assert not any(source is status for source, _ in machine.edges())


def test_resolved_is_pre_close_not_terminal():
    machine = TicketStateMachine()
    assert not TicketStatus.RESOLVED.is_terminal()
    assert set(machine.allowed_targets(TicketStatus.RESOLVED)) == {
        TicketStatus.CLOSED,
        TicketStatus.OPEN,
        TicketStatus.IN_PROGRESS,
    }


def test_is_allowed_is_total_and_matches_edge_set():
    machine = TicketStateMachine()
    edges = machine.edges()
    for current, target in itertools.product(TicketStatus, repeat=2):
        assert machine.is_allowed(current, target) is ((current, target) in edges)


def test_custom_edge_table_is_fail_closed():
    machine = TicketStateMachine(frozenset({(TicketStatus.OPEN, TicketStatus.CLOSED)}))
    assert machine.is_allowed(TicketStatus.OPEN, TicketStatus.CLOSED)
    assert not machine.is_allowed(TicketStatus.OPEN, TicketStatus.IN_PROGRESS)
    assert TicketStateMachine.initial_state() is TicketStatus.OPEN
