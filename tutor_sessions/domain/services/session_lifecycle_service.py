"""Lifecycle service applying session state changes against a session store."""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..entities.http_messages import NoShowSweepResult
from ..entities.lifecycle_event import ActorRole, SessionLifecycleEvent
from ..entities.tutoring_session import (
    BookingRequest,
    SessionStatus,
    TutoringSession,
    as_utc,
    utc_now,
)
from ..errors import (
    ConcurrentModificationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from ..interfaces.lifecycle_audit_log import LifecycleAuditLog
from ..interfaces.session_store import SessionStore
from .session_state_machine import get_valid_next_states, validate_session_transition

logger = logging.getLogger(__name__)

DEFAULT_BOOKING_GRACE = timedelta(minutes=5)
DEFAULT_NO_SHOW_GRACE = timedelta(minutes=15)


class SessionLifecycleService:
    """
    Owns every write to a session's status, started_at and ended_at.

    The service is handed its store (and optionally an audit log) at
    construction time and holds no other state, so it can be shared by
    concurrent requests. Status changes are applied with a compare-and-swap
    against the store: the write only lands if the stored status still equals
    the status that was validated.
    """

    def __init__(
        self,
        session_store: SessionStore,
        audit_log: Optional[LifecycleAuditLog] = None,
        booking_grace: timedelta = DEFAULT_BOOKING_GRACE,
        no_show_grace: timedelta = DEFAULT_NO_SHOW_GRACE,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            session_store: Persistence store for session rows
            audit_log: Optional sink for lifecycle events
            booking_grace: How far in the past a booking may still be scheduled
            no_show_grace: How long after scheduled_at a SCHEDULED session counts as a no-show
            clock: Returns the current UTC time
        """
        self.session_store = session_store
        self.audit_log = audit_log
        self.booking_grace = booking_grace
        self.no_show_grace = no_show_grace
        self._clock = clock

    async def get_session(self, session_id: str) -> TutoringSession:
        return await self.session_store.read_session(session_id)

    async def create_session_with_validation(
        self,
        booking: BookingRequest,
        triggered_by: ActorRole = ActorRole.SYSTEM,
        actor_id: Optional[str] = None,
    ) -> TutoringSession:
        """
        Create a new SCHEDULED session from a booking request.

        Args:
            booking: Tutor (optional), student and scheduled time
            triggered_by: Role recorded in the audit trail
            actor_id: User recorded in the audit trail

        Returns:
            The stored session

        Raises:
            ValidationError: If the student or scheduled time is missing, or the
                scheduled time lies further in the past than the booking grace
        """
        student_id = (booking.student_id or "").strip()
        if not student_id:
            raise ValidationError("student_id is required to book a session")

        scheduled_at = as_utc(booking.scheduled_at)
        if scheduled_at is None:
            raise ValidationError("scheduled_at is required to book a session")

        now = self._clock()
        if scheduled_at < now - self.booking_grace:
            raise ValidationError(
                f"scheduled_at {scheduled_at.isoformat()} is in the past"
            )

        tutor_id = (booking.tutor_id or "").strip() or None
        session = TutoringSession(
            status=SessionStatus.SCHEDULED,
            scheduled_at=scheduled_at,
            tutor_id=tutor_id,
            student_id=student_id,
            started_at=None,
            ended_at=None,
            created_at=now,
            updated_at=now,
        )
        created = await self.session_store.create_session(session)
        logger.info(
            f"Booked session {created.id} for student {student_id} at {scheduled_at.isoformat()}"
        )

        await self._record(
            created,
            old_status=None,
            triggered_by=triggered_by,
            actor_id=actor_id,
            reason="Session booked",
        )
        return created

    async def atomic_update_session_status(
        self,
        session_id: str,
        requested_status: SessionStatus,
        expected_status: Optional[SessionStatus] = None,
        triggered_by: ActorRole = ActorRole.SYSTEM,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> TutoringSession:
        """
        Move a session to ``requested_status`` with compare-and-swap semantics.

        Args:
            session_id: Session to update
            requested_status: Target status
            expected_status: Status the caller last saw; if given and it no longer
                matches the stored status the call fails without writing
            triggered_by: Role recorded in the audit trail
            actor_id: User recorded in the audit trail
            reason: Free-text reason recorded in the audit trail

        Returns:
            The session after the write

        Raises:
            ValidationError: If either status is not a known session status
            NotFoundError: If the session does not exist
            InvalidTransitionError: If the edge is not permitted
            PreconditionFailedError: If the target is LIVE and no tutor is assigned
            ConcurrentModificationError: If the status changed underneath the caller
        """
        requested_status = _coerce_status(requested_status, "status")
        if expected_status is not None:
            expected_status = _coerce_status(expected_status, "expected_status")

        session = await self.session_store.read_session(session_id)
        current = session.status

        if expected_status is not None and expected_status != current:
            logger.warning(
                f"Session {session_id} is {current.value}, caller expected {expected_status.value}"
            )
            raise ConcurrentModificationError(session_id, expected_status, current)

        if not validate_session_transition(current, requested_status):
            logger.warning(
                f"Rejected transition {current.value} -> {requested_status.value} for session {session_id}"
            )
            raise InvalidTransitionError(current, requested_status, get_valid_next_states(current))

        if requested_status == SessionStatus.LIVE and not session.has_tutor:
            logger.warning(f"Session {session_id} cannot go live without a tutor")
            raise PreconditionFailedError("Cannot start a session with no tutor assigned")

        now = self._clock()
        fields = {"status": requested_status, "updated_at": now}
        if requested_status == SessionStatus.LIVE and session.started_at is None:
            fields["started_at"] = now
        if requested_status.is_terminal:
            fields["ended_at"] = now

        try:
            updated = await self.session_store.conditional_update_session(session_id, current, fields)
        except ConflictError as e:
            logger.warning(
                f"Concurrent modification of session {session_id}: expected {current.value}, "
                f"found {e.actual_status.value if e.actual_status else 'unknown'}"
            )
            raise ConcurrentModificationError(session_id, current, e.actual_status) from e

        logger.info(f"Session {session_id}: {current.value} -> {requested_status.value}")

        await self._record(
            updated,
            old_status=current,
            triggered_by=triggered_by,
            actor_id=actor_id,
            reason=reason,
        )
        return updated

    async def assign_tutor(
        self,
        session_id: str,
        tutor_id: str,
        triggered_by: ActorRole = ActorRole.ADMIN,
        actor_id: Optional[str] = None,
    ) -> TutoringSession:
        """
        Assign a tutor to a session that has not started yet.

        The write is conditional on the session still being SCHEDULED, so it
        cannot interleave with a transition.

        Raises:
            ValidationError: If tutor_id is blank
            NotFoundError: If the session does not exist
            PreconditionFailedError: If the session is no longer SCHEDULED
            ConcurrentModificationError: If the session left SCHEDULED mid-assignment
        """
        tutor_id = (tutor_id or "").strip()
        if not tutor_id:
            raise ValidationError("tutor_id is required to assign a tutor")

        session = await self.session_store.read_session(session_id)
        if session.status != SessionStatus.SCHEDULED:
            raise PreconditionFailedError(
                f"Tutors can only be assigned to scheduled sessions (current status: {session.status.value})"
            )

        try:
            updated = await self.session_store.conditional_update_session(
                session_id,
                SessionStatus.SCHEDULED,
                {"tutor_id": tutor_id, "updated_at": self._clock()},
            )
        except ConflictError as e:
            raise ConcurrentModificationError(session_id, SessionStatus.SCHEDULED, e.actual_status) from e

        logger.info(f"Assigned tutor {tutor_id} to session {session_id}")

        await self._record(
            updated,
            old_status=SessionStatus.SCHEDULED,
            triggered_by=triggered_by,
            actor_id=actor_id,
            reason=f"Tutor {tutor_id} assigned",
        )
        return updated

    async def sweep_no_shows(self, now: Optional[datetime] = None) -> NoShowSweepResult:
        """
        Mark SCHEDULED sessions whose start is older than the no-show grace as NO_SHOW.

        Sessions that change state while the sweep runs are skipped, not retried.
        """
        now = as_utc(now) or self._clock()
        cutoff = now - self.no_show_grace
        result = NoShowSweepResult()

        candidates = await self.session_store.list_sessions(status=SessionStatus.SCHEDULED)
        for session in candidates:
            if session.scheduled_at > cutoff:
                continue
            try:
                await self.atomic_update_session_status(
                    session.session_id,
                    SessionStatus.NO_SHOW,
                    expected_status=SessionStatus.SCHEDULED,
                    triggered_by=ActorRole.SYSTEM,
                    reason="Scheduled time passed with no join",
                )
                result.marked.append(session.session_id)
            except (ConcurrentModificationError, InvalidTransitionError, NotFoundError) as e:
                logger.info(f"No-show sweep skipped session {session.session_id}: {e}")
                result.skipped.append(session.session_id)

        logger.info(
            f"No-show sweep finished: {len(result.marked)} marked, {len(result.skipped)} skipped"
        )
        return result

    async def get_session_history(self, session_id: str) -> list[SessionLifecycleEvent]:
        await self.session_store.read_session(session_id)
        if self.audit_log is None:
            return []
        return await self.audit_log.list_events(session_id)

    async def _record(
        self,
        session: TutoringSession,
        old_status: Optional[SessionStatus],
        triggered_by: ActorRole,
        actor_id: Optional[str],
        reason: Optional[str],
    ) -> None:
        """Write a lifecycle event; failures are logged and never undo the change."""
        if self.audit_log is None:
            return

        event = SessionLifecycleEvent(
            session_id=session.session_id,
            student_id=session.student_id,
            tutor_id=session.tutor_id,
            old_status=old_status,
            new_status=session.status,
            triggered_by=triggered_by,
            actor_id=actor_id,
            reason=reason,
            occurred_at=self._clock(),
        )
        try:
            await self.audit_log.record(event)
        except Exception as e:
            logger.warning(
                f"Failed to record lifecycle event for session {session.session_id}: {e}",
                exc_info=True,
            )


def _coerce_status(value, field: str) -> SessionStatus:
    try:
        return SessionStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in SessionStatus)
        raise ValidationError(f"Unknown {field} {value!r} (expected one of: {allowed})") from e
