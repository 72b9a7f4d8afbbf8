"""Tests for the role checks run before lifecycle operations."""

from datetime import timedelta

import pytest

from tutor_sessions.application import access_policy
from tutor_sessions.domain.entities import Actor, ActorRole, BookingRequest, SessionStatus
from tutor_sessions.domain.errors import ForbiddenError, PreconditionFailedError

from conftest import FIXED_NOW

NOTICE = timedelta(minutes=120)

STUDENT = Actor(role=ActorRole.STUDENT, user_id="S1")
OTHER_STUDENT = Actor(role=ActorRole.STUDENT, user_id="S2")
TUTOR = Actor(role=ActorRole.TUTOR, user_id="T1")
OTHER_TUTOR = Actor(role=ActorRole.TUTOR, user_id="T2")
ADMIN = Actor(role=ActorRole.ADMIN, user_id="admin-1")
SYSTEM = Actor(role=ActorRole.SYSTEM)


@pytest.fixture
def session(make_session):
    return make_session(tutor_id="T1", student_id="S1")


def _transition(actor, session, target):
    access_policy.ensure_can_transition(actor, session, target, now=FIXED_NOW, cancellation_notice=NOTICE)


class TestEnsureCanTransition:

    @pytest.mark.parametrize("actor", [TUTOR, ADMIN])
    def test_tutor_or_admin_can_start(self, session, actor):
        _transition(actor, session, SessionStatus.LIVE)

    @pytest.mark.parametrize("actor", [STUDENT, SYSTEM])
    def test_others_cannot_start(self, session, actor):
        with pytest.raises(ForbiddenError, match="cannot mark sessions as LIVE"):
            _transition(actor, session, SessionStatus.LIVE)

    def test_student_cannot_complete(self, session):
        with pytest.raises(ForbiddenError):
            _transition(STUDENT, session, SessionStatus.COMPLETED)

    def test_system_can_mark_no_show(self, session):
        _transition(SYSTEM, session, SessionStatus.NO_SHOW)

    def test_tutor_must_be_assigned(self, session):
        with pytest.raises(ForbiddenError, match="Not authorized for this session"):
            _transition(OTHER_TUTOR, session, SessionStatus.LIVE)

    def test_student_must_own_session(self, session):
        with pytest.raises(ForbiddenError, match="Not authorized for this session"):
            _transition(OTHER_STUDENT, session, SessionStatus.CANCELLED)

    def test_student_can_cancel_with_notice(self, session):
        _transition(STUDENT, session, SessionStatus.CANCELLED)

    def test_late_cancellation_rejected_for_participants(self, make_session):
        soon = make_session(tutor_id="T1", scheduled_at=FIXED_NOW + timedelta(minutes=90))

        for actor in (STUDENT, TUTOR):
            with pytest.raises(PreconditionFailedError, match="120 minutes"):
                _transition(actor, soon, SessionStatus.CANCELLED)

    def test_admin_may_cancel_late(self, make_session):
        soon = make_session(tutor_id="T1", scheduled_at=FIXED_NOW + timedelta(minutes=10))
        _transition(ADMIN, soon, SessionStatus.CANCELLED)

    def test_non_participant_rejected_before_target_lookup(self, session):
        """Test that an unlisted target does not let strangers reach the engine."""
        with pytest.raises(ForbiddenError, match="Not authorized for this session"):
            _transition(OTHER_STUDENT, session, SessionStatus.SCHEDULED)

    @pytest.mark.parametrize("actor", [STUDENT, TUTOR])
    def test_participants_cannot_request_unlisted_target(self, session, actor):
        with pytest.raises(ForbiddenError, match="cannot mark sessions as SCHEDULED"):
            _transition(actor, session, SessionStatus.SCHEDULED)

    @pytest.mark.parametrize("actor", [ADMIN, SYSTEM])
    def test_unlisted_target_is_left_to_the_engine_for_privileged_roles(self, session, actor):
        _transition(actor, session, SessionStatus.SCHEDULED)


class TestEnsureCanBook:

    def test_student_books_for_self(self):
        access_policy.ensure_can_book(STUDENT, BookingRequest(student_id="S1"))

    def test_student_cannot_book_for_others(self):
        with pytest.raises(ForbiddenError, match="for themselves"):
            access_policy.ensure_can_book(STUDENT, BookingRequest(student_id="S2"))

    @pytest.mark.parametrize("actor", [TUTOR, SYSTEM])
    def test_non_students_cannot_book(self, actor):
        with pytest.raises(ForbiddenError, match="Only learners"):
            access_policy.ensure_can_book(actor, BookingRequest(student_id="S1"))

    def test_admin_books_for_anyone(self):
        access_policy.ensure_can_book(ADMIN, BookingRequest(student_id="S2"))


def test_view_requires_participation(session):
    access_policy.ensure_can_view(STUDENT, session)
    access_policy.ensure_can_view(TUTOR, session)
    access_policy.ensure_can_view(ADMIN, session)
    with pytest.raises(ForbiddenError):
        access_policy.ensure_can_view(OTHER_STUDENT, session)


def test_only_admin_assigns_tutors():
    access_policy.ensure_can_assign_tutor(ADMIN)
    for actor in (STUDENT, TUTOR, SYSTEM):
        with pytest.raises(ForbiddenError):
            access_policy.ensure_can_assign_tutor(actor)


def test_sweep_requires_admin_or_system():
    access_policy.ensure_can_sweep(ADMIN)
    access_policy.ensure_can_sweep(SYSTEM)
    with pytest.raises(ForbiddenError):
        access_policy.ensure_can_sweep(TUTOR)
