"""Session state machine.

States:
- SCHEDULED: initial state when a session is booked
- LIVE: session is currently happening
- COMPLETED: session finished normally
- NO_SHOW: a participant never joined
- CANCELLED: booking cancelled before the session started

COMPLETED, NO_SHOW and CANCELLED are terminal.
"""

from ..entities.tutoring_session import SessionStatus

VALID_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset(
        {SessionStatus.LIVE, SessionStatus.CANCELLED, SessionStatus.NO_SHOW}
    ),
    SessionStatus.LIVE: frozenset({SessionStatus.COMPLETED, SessionStatus.NO_SHOW}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.NO_SHOW: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def validate_session_transition(current: SessionStatus, requested: SessionStatus) -> bool:
    """Return True if ``current -> requested`` is a permitted edge."""
    return SessionStatus(requested) in VALID_TRANSITIONS.get(SessionStatus(current), frozenset())


def get_valid_next_states(current: SessionStatus) -> frozenset[SessionStatus]:
    """Return the statuses reachable in one edge from ``current``."""
    return VALID_TRANSITIONS.get(SessionStatus(current), frozenset())
