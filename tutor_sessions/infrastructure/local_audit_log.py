"""Local in-memory implementation of LifecycleAuditLog."""

import logging
from collections import defaultdict
from typing import Dict, List

from ..domain.entities.lifecycle_event import SessionLifecycleEvent
from ..domain.interfaces.lifecycle_audit_log import LifecycleAuditLog

logger = logging.getLogger(__name__)


class LocalLifecycleAuditLog(LifecycleAuditLog):
    """Keeps lifecycle events in memory, grouped by session id."""

    def __init__(self):
        self._events: Dict[str, List[SessionLifecycleEvent]] = defaultdict(list)

    async def record(self, event: SessionLifecycleEvent) -> None:
        logger.info(
            f"[AUDIT] SESSION_LIFECYCLE - {event.action}",
            extra={"session_id": event.session_id, "triggered_by": event.triggered_by.value},
        )
        self._events[event.session_id].append(event)

    async def list_events(self, session_id: str) -> list[SessionLifecycleEvent]:
        return list(self._events.get(session_id, []))

    def clear(self) -> None:
        """Clear all recorded events."""
        self._events.clear()
