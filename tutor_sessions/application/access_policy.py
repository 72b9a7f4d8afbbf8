"""Role checks applied before the lifecycle engine is called.

Every HTTP handler goes through these functions instead of comparing roles
inline. The caller's role is taken as already authenticated.
"""

from datetime import datetime, timedelta

from ..domain.entities.lifecycle_event import Actor, ActorRole
from ..domain.entities.tutoring_session import BookingRequest, SessionStatus, TutoringSession
from ..domain.errors import ForbiddenError, PreconditionFailedError

TRANSITION_ROLES: dict[SessionStatus, frozenset[ActorRole]] = {
    SessionStatus.LIVE: frozenset({ActorRole.TUTOR, ActorRole.ADMIN}),
    SessionStatus.COMPLETED: frozenset({ActorRole.TUTOR, ActorRole.ADMIN}),
    SessionStatus.NO_SHOW: frozenset({ActorRole.TUTOR, ActorRole.ADMIN, ActorRole.SYSTEM}),
    SessionStatus.CANCELLED: frozenset({ActorRole.STUDENT, ActorRole.TUTOR, ActorRole.ADMIN}),
}

PRIVILEGED_ROLES = frozenset({ActorRole.ADMIN, ActorRole.SYSTEM})


def ensure_can_view(actor: Actor, session: TutoringSession) -> None:
    if actor.role in PRIVILEGED_ROLES:
        return
    _ensure_participant(actor, session)


def ensure_can_book(actor: Actor, booking: BookingRequest) -> None:
    if actor.role == ActorRole.ADMIN:
        return
    if actor.role != ActorRole.STUDENT:
        raise ForbiddenError("Only learners can book sessions")
    if booking.student_id and booking.student_id != actor.user_id:
        raise ForbiddenError("Learners can only book sessions for themselves")


def ensure_can_assign_tutor(actor: Actor) -> None:
    if actor.role != ActorRole.ADMIN:
        raise ForbiddenError("Only admins can assign tutors to sessions")


def ensure_can_sweep(actor: Actor) -> None:
    if actor.role not in PRIVILEGED_ROLES:
        raise ForbiddenError("Only admins or the system can run the no-show sweep")


def ensure_can_transition(
    actor: Actor,
    session: TutoringSession,
    target: SessionStatus,
    now: datetime,
    cancellation_notice: timedelta,
) -> None:
    """
    Check that ``actor`` may move ``session`` to ``target``.

    Participation is checked before anything else, so a caller who cannot
    view the session learns nothing about its status. Targets with no entry
    in TRANSITION_ROLES are only passed on to the engine for privileged roles.

    Raises:
        ForbiddenError: If the actor is not a participant of the session or
            the role may not request this status
        PreconditionFailedError: If a non-admin cancels inside the notice window
    """
    ensure_can_view(actor, session)

    allowed = TRANSITION_ROLES.get(target, PRIVILEGED_ROLES)
    if actor.role not in allowed:
        raise ForbiddenError(f"{actor.role.value} cannot mark sessions as {target.value}")

    if (
        target == SessionStatus.CANCELLED
        and actor.role != ActorRole.ADMIN
        and session.status == SessionStatus.SCHEDULED
        and session.scheduled_at < now + cancellation_notice
    ):
        minutes = int(cancellation_notice.total_seconds() // 60)
        raise PreconditionFailedError(
            f"Cannot cancel sessions less than {minutes} minutes before start time (unless admin)"
        )


def _ensure_participant(actor: Actor, session: TutoringSession) -> None:
    if actor.role == ActorRole.TUTOR and actor.user_id and session.tutor_id == actor.user_id:
        return
    if actor.role == ActorRole.STUDENT and actor.user_id and session.student_id == actor.user_id:
        return
    raise ForbiddenError("Not authorized for this session")
