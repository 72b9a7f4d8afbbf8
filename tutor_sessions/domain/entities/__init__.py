"""Domain entities for the tutoring session lifecycle."""

from .http_messages import (
    AssignTutorRequest,
    ErrorResponse,
    NoShowSweepResult,
    SessionHistory,
    SessionResponse,
    StatusChangeRequest,
    TransitionOptions,
)
from .idempotency_record import IdempotencyRecord
from .lifecycle_event import Actor, ActorRole, SessionLifecycleEvent
from .tutoring_session import (
    TERMINAL_STATUSES,
    BookingRequest,
    SessionStatus,
    TutoringSession,
    as_utc,
    utc_now,
)

__all__ = [
    # Session entities
    "TutoringSession",
    "SessionStatus",
    "TERMINAL_STATUSES",
    "BookingRequest",
    "utc_now",
    "as_utc",
    # Audit entities
    "SessionLifecycleEvent",
    "Actor",
    "ActorRole",
    # Idempotency
    "IdempotencyRecord",
    # HTTP message entities
    "StatusChangeRequest",
    "AssignTutorRequest",
    "SessionResponse",
    "TransitionOptions",
    "SessionHistory",
    "NoShowSweepResult",
    "ErrorResponse",
]
