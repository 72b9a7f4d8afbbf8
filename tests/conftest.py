"""
Shared test fixtures for the session lifecycle test suite.

Provides: a controllable clock, in-memory store and audit log, a wired
lifecycle service and a factory for session rows.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tutor_sessions.domain.entities import SessionStatus, TutoringSession
from tutor_sessions.domain.services import SessionLifecycleService
from tutor_sessions.infrastructure import LocalLifecycleAuditLog, LocalSessionStore

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    """Create a fresh LocalSessionStore for each test."""
    return LocalSessionStore()


@pytest.fixture
def audit_log():
    return LocalLifecycleAuditLog()


@pytest.fixture
def service(store, audit_log, clock):
    return SessionLifecycleService(
        session_store=store,
        audit_log=audit_log,
        booking_grace=timedelta(minutes=5),
        no_show_grace=timedelta(minutes=15),
        clock=clock,
    )


@pytest.fixture
def make_session():
    """Factory for session rows with sensible defaults."""

    def _make(**overrides) -> TutoringSession:
        fields = {
            "status": SessionStatus.SCHEDULED,
            "scheduled_at": FIXED_NOW + timedelta(days=1),
            "tutor_id": None,
            "student_id": "S1",
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        fields.update(overrides)
        return TutoringSession(**fields)

    return _make
