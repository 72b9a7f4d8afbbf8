"""Local in-memory implementation of the Session Store."""

import asyncio
from typing import Any, Dict, Mapping, Optional

from ..domain.entities.tutoring_session import SessionStatus, TutoringSession
from ..domain.errors import ConflictError, NotFoundError
from ..domain.interfaces.session_store import SessionStore


class LocalSessionStore(SessionStore):
    """Local in-memory implementation of the Session Store.

    Stores sessions in a dictionary for testing and development purposes.
    Conditional updates compare and write under a single asyncio lock, and
    every read hands back a copy so callers never mutate stored rows.
    """

    def __init__(self):
        """Initialize the local session store with an empty dictionary."""
        self._sessions: Dict[str, TutoringSession] = {}
        self._lock = asyncio.Lock()

    async def read_session(self, session_id: str) -> TutoringSession:
        """Retrieve a session by ID from the in-memory dictionary.

        Raises:
            NotFoundError: If the session is not found.
        """
        session = self._sessions.get(str(session_id))
        if session is None:
            raise NotFoundError(session_id)
        return session.model_copy()

    async def create_session(self, session: TutoringSession) -> TutoringSession:
        """Store a new session.

        Raises:
            ConflictError: If a session with the same id already exists.
        """
        async with self._lock:
            if session.session_id in self._sessions:
                raise ConflictError(
                    session.session_id,
                    message=f"Session with id {session.session_id} already exists",
                )
            self._sessions[session.session_id] = session.model_copy()
        return session.model_copy()

    async def conditional_update_session(
        self,
        session_id: str,
        expected_status: SessionStatus,
        fields: Mapping[str, Any],
    ) -> TutoringSession:
        """Apply fields if the stored status equals expected_status.

        Raises:
            NotFoundError: If the session is not found.
            ConflictError: If the stored status differs from expected_status.
        """
        session_id = str(session_id)
        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise NotFoundError(session_id)
            if current.status != expected_status:
                raise ConflictError(session_id, expected_status, current.status)

            updated = current.model_copy(update=dict(fields))
            self._sessions[session_id] = updated
        return updated.model_copy()

    async def list_sessions(self, status: Optional[SessionStatus] = None) -> list[TutoringSession]:
        """List all sessions, optionally only those in ``status``."""
        return [
            session.model_copy()
            for session in self._sessions.values()
            if status is None or session.status == status
        ]

    def clear(self) -> None:
        """Clear all sessions from the dictionary."""
        self._sessions.clear()

    def get_all_sessions(self) -> Dict[str, TutoringSession]:
        """Get all sessions.

        Returns:
            Dict[str, TutoringSession]: Dictionary of all sessions.
        """
        return self._sessions.copy()
