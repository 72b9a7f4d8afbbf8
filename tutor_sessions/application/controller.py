"""Session lifecycle controller coordinating access checks and the engine."""

import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from ..domain.entities import (
    Actor,
    BookingRequest,
    NoShowSweepResult,
    SessionHistory,
    SessionResponse,
    StatusChangeRequest,
    TransitionOptions,
    utc_now,
)
from ..domain.services import SessionLifecycleService, get_valid_next_states
from . import access_policy
from .idempotency import IdempotencyService

logger = logging.getLogger(__name__)


class SessionLifecycleController:
    """
    Controller for session lifecycle operations.

    The controller is injected with the lifecycle service, runs the access
    policy for the calling actor and converts entities to API responses,
    keeping the API layer thin. Booking and status changes honour an
    optional Idempotency-Key when an idempotency service is wired in.
    """

    def __init__(
        self,
        lifecycle_service: SessionLifecycleService,
        cancellation_notice: timedelta = timedelta(hours=2),
        idempotency: Optional[IdempotencyService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            lifecycle_service: Engine that owns all session writes
            cancellation_notice: Minimum notice for non-admin cancellations
            idempotency: Replays repeated write requests by Idempotency-Key
            clock: Returns the current UTC time
        """
        self.lifecycle_service = lifecycle_service
        self.cancellation_notice = cancellation_notice
        self.idempotency = idempotency
        self._clock = clock

        logger.info("SessionLifecycleController initialized")

    async def book_session(
        self,
        booking: BookingRequest,
        actor: Actor,
        idempotency_key: Optional[str] = None,
    ) -> SessionResponse:
        access_policy.ensure_can_book(actor, booking)

        async def book() -> SessionResponse:
            session = await self.lifecycle_service.create_session_with_validation(
                booking,
                triggered_by=actor.role,
                actor_id=actor.user_id,
            )
            return SessionResponse.from_session(session)

        return await self._run_once(
            idempotency_key, "book_session", actor, booking.model_dump(mode="json"), book
        )

    async def get_session(self, session_id: str, actor: Actor) -> SessionResponse:
        session = await self.lifecycle_service.get_session(session_id)
        access_policy.ensure_can_view(actor, session)
        return SessionResponse.from_session(session)

    async def get_transition_options(self, session_id: str, actor: Actor) -> TransitionOptions:
        session = await self.lifecycle_service.get_session(session_id)
        access_policy.ensure_can_view(actor, session)
        return TransitionOptions(
            session_id=session.session_id,
            current_status=session.status,
            valid_next_states=sorted(get_valid_next_states(session.status), key=lambda s: s.value),
        )

    async def change_status(
        self,
        session_id: str,
        request: StatusChangeRequest,
        actor: Actor,
        idempotency_key: Optional[str] = None,
    ) -> SessionResponse:
        """
        Apply a status change requested by ``actor``.

        The policy check reads the session first; the engine then re-reads and
        writes with compare-and-swap, so a change made in between still
        surfaces as a concurrent modification. A repeated request with the
        same Idempotency-Key gets the first response instead of an
        InvalidTransitionError.
        """
        session = await self.lifecycle_service.get_session(session_id)
        access_policy.ensure_can_transition(
            actor,
            session,
            request.status,
            now=self._clock(),
            cancellation_notice=self.cancellation_notice,
        )

        async def transition() -> SessionResponse:
            updated = await self.lifecycle_service.atomic_update_session_status(
                session_id,
                request.status,
                expected_status=request.expected_status,
                triggered_by=actor.role,
                actor_id=actor.user_id,
                reason=request.reason or f"Session marked as {request.status.value.lower()}",
            )
            return SessionResponse.from_session(updated)

        payload = {"session_id": session.session_id, **request.model_dump(mode="json")}
        return await self._run_once(idempotency_key, "change_status", actor, payload, transition)

    async def assign_tutor(self, session_id: str, tutor_id: str, actor: Actor) -> SessionResponse:
        access_policy.ensure_can_assign_tutor(actor)
        updated = await self.lifecycle_service.assign_tutor(
            session_id,
            tutor_id,
            triggered_by=actor.role,
            actor_id=actor.user_id,
        )
        return SessionResponse.from_session(updated)

    async def get_history(self, session_id: str, actor: Actor) -> SessionHistory:
        session = await self.lifecycle_service.get_session(session_id)
        access_policy.ensure_can_view(actor, session)
        events = await self.lifecycle_service.get_session_history(session_id)
        return SessionHistory(session_id=session.session_id, events=events)

    async def run_no_show_sweep(self, actor: Actor) -> NoShowSweepResult:
        access_policy.ensure_can_sweep(actor)
        return await self.lifecycle_service.sweep_no_shows()

    def get_health_status(self) -> dict:
        """
        Get application health status.

        Returns:
            Dict containing health status information
        """
        service = self.lifecycle_service
        return {
            "status": "healthy",
            "providers": {
                "session_store": type(service.session_store).__name__,
                "audit_log": type(service.audit_log).__name__ if service.audit_log else None,
                "idempotency_store": type(self.idempotency.store).__name__ if self.idempotency else None,
            },
        }

    async def _run_once(
        self,
        idempotency_key: Optional[str],
        operation: str,
        actor: Actor,
        payload: dict,
        handler: Callable[[], Awaitable[SessionResponse]],
    ) -> SessionResponse:
        if self.idempotency is None or idempotency_key is None:
            return await handler()
        return await self.idempotency.run(
            idempotency_key, operation, actor, payload, handler, SessionResponse
        )
