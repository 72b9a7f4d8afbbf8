"""Domain services for the tutoring session lifecycle."""

from .session_lifecycle_service import SessionLifecycleService
from .session_state_machine import (
    VALID_TRANSITIONS,
    get_valid_next_states,
    validate_session_transition,
)

__all__ = [
    "SessionLifecycleService",
    "VALID_TRANSITIONS",
    "get_valid_next_states",
    "validate_session_transition",
]
