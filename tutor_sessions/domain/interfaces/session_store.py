"""Session Store interface."""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from ..entities.tutoring_session import SessionStatus, TutoringSession


@runtime_checkable
class SessionStore(Protocol):
    """Protocol defining the persistence store behind the lifecycle engine.

    This interface can be implemented by different storage backends
    (in-memory, DynamoDB, etc.). Status, started_at and ended_at are only
    ever written through conditional_update_session.
    """

    async def read_session(self, session_id: str) -> TutoringSession:
        """Retrieve a session by ID.

        Args:
            session_id: The unique identifier of the session.

        Returns:
            TutoringSession: The stored session.

        Raises:
            NotFoundError: If the session is not found.
        """
        ...

    async def create_session(self, session: TutoringSession) -> TutoringSession:
        """Persist a new session row.

        Args:
            session: The session entity to create.

        Returns:
            TutoringSession: The stored session.

        Raises:
            ConflictError: If a session with the same id already exists.
        """
        ...

    async def conditional_update_session(
        self,
        session_id: str,
        expected_status: SessionStatus,
        fields: Mapping[str, Any],
    ) -> TutoringSession:
        """Apply fields only if the stored status still equals expected_status.

        The comparison and the write are a single atomic step.

        Args:
            session_id: The unique identifier of the session.
            expected_status: Status the caller read before deciding on the write.
            fields: Attribute values to set together.

        Returns:
            TutoringSession: The session after the write.

        Raises:
            NotFoundError: If the session is not found.
            ConflictError: If the stored status differs from expected_status.
        """
        ...

    async def list_sessions(self, status: Optional[SessionStatus] = None) -> list[TutoringSession]:
        """List sessions, optionally filtered by status.

        Args:
            status: Only return sessions in this status when given.

        Returns:
            list[TutoringSession]: Matching sessions.
        """
        ...
