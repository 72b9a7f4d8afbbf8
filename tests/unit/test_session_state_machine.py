"""Tests for the session state machine edge table."""

from itertools import product

import pytest

from tutor_sessions.domain.entities import TERMINAL_STATUSES, SessionStatus
from tutor_sessions.domain.services import (
    VALID_TRANSITIONS,
    get_valid_next_states,
    validate_session_transition,
)

PERMITTED_EDGES = {
    (SessionStatus.SCHEDULED, SessionStatus.LIVE),
    (SessionStatus.SCHEDULED, SessionStatus.CANCELLED),
    (SessionStatus.SCHEDULED, SessionStatus.NO_SHOW),
    (SessionStatus.LIVE, SessionStatus.COMPLETED),
    (SessionStatus.LIVE, SessionStatus.NO_SHOW),
}

ALL_PAIRS = list(product(SessionStatus, SessionStatus))
REJECTED_EDGES = [pair for pair in ALL_PAIRS if pair not in PERMITTED_EDGES]


@pytest.mark.parametrize("current,requested", sorted(PERMITTED_EDGES))
def test_permitted_edges_validate(current, requested):
    """Test that every edge in the table is accepted."""
    assert validate_session_transition(current, requested) is True


@pytest.mark.parametrize("current,requested", REJECTED_EDGES)
def test_other_pairs_are_rejected(current, requested):
    """Test that every pair outside the table is rejected."""
    assert validate_session_transition(current, requested) is False


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
def test_terminal_states_have_no_next_states(terminal):
    assert get_valid_next_states(terminal) == frozenset()


def test_valid_next_states_from_scheduled():
    assert get_valid_next_states(SessionStatus.SCHEDULED) == {
        SessionStatus.LIVE,
        SessionStatus.CANCELLED,
        SessionStatus.NO_SHOW,
    }


def test_valid_next_states_from_live():
    assert get_valid_next_states(SessionStatus.LIVE) == {
        SessionStatus.COMPLETED,
        SessionStatus.NO_SHOW,
    }


def test_self_transitions_are_never_permitted():
    """Test that no status can transition to itself (e.g. LIVE -> LIVE)."""
    for status in SessionStatus:
        assert not validate_session_transition(status, status)


def test_live_cannot_be_cancelled():
    assert not validate_session_transition(SessionStatus.LIVE, SessionStatus.CANCELLED)


def test_scheduled_cannot_complete_directly():
    assert not validate_session_transition(SessionStatus.SCHEDULED, SessionStatus.COMPLETED)


def test_plain_string_statuses_are_accepted():
    """Test that raw status strings work as well as enum members."""
    assert validate_session_transition("SCHEDULED", "LIVE")
    assert get_valid_next_states("LIVE") == {SessionStatus.COMPLETED, SessionStatus.NO_SHOW}


def test_table_covers_every_status():
    assert set(VALID_TRANSITIONS) == set(SessionStatus)
