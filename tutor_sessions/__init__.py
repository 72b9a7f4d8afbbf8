"""Tutoring session lifecycle engine.

The public contract of the engine is re-exported here.
"""

from .domain.entities import BookingRequest, SessionStatus, TutoringSession
from .domain.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from .domain.services import (
    SessionLifecycleService,
    get_valid_next_states,
    validate_session_transition,
)

__all__ = [
    "BookingRequest",
    "SessionStatus",
    "TutoringSession",
    "SessionLifecycleService",
    "validate_session_transition",
    "get_valid_next_states",
    "NotFoundError",
    "InvalidTransitionError",
    "PreconditionFailedError",
    "ConcurrentModificationError",
    "ValidationError",
]
