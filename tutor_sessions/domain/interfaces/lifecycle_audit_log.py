"""Lifecycle audit log protocol."""

from typing import Protocol, runtime_checkable

from ..entities.lifecycle_event import SessionLifecycleEvent


@runtime_checkable
class LifecycleAuditLog(Protocol):
    """Protocol for recording session lifecycle events."""

    async def record(self, event: SessionLifecycleEvent) -> None:
        """Persist a lifecycle event.

        Args:
            event: The event to record.
        """
        ...

    async def list_events(self, session_id: str) -> list[SessionLifecycleEvent]:
        """Return the events recorded for a session, oldest first.

        Args:
            session_id: The unique identifier of the session.
        """
        ...
