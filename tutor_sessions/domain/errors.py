"""Error taxonomy for the session lifecycle engine."""

from enum import Enum
from typing import Iterable, Optional


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers."""

    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    STORE_CONFLICT = "STORE_CONFLICT"
    STORE_ERROR = "STORE_ERROR"
    INVALID_IDEMPOTENCY_KEY = "INVALID_IDEMPOTENCY_KEY"
    IDEMPOTENCY_KEY_CONFLICT = "IDEMPOTENCY_KEY_CONFLICT"


class SessionLifecycleError(Exception):
    """Base class for every error raised by the lifecycle engine and its stores."""

    code: ErrorCode = ErrorCode.STORE_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SessionLifecycleError):
    """The session identifier does not exist."""

    code = ErrorCode.SESSION_NOT_FOUND

    def __init__(self, session_id: str):
        super().__init__(f"Session with id {session_id} not found")
        self.session_id = session_id


class InvalidTransitionError(SessionLifecycleError):
    """The requested edge is not permitted from the current status."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, current_status, requested_status, valid_next_states: Iterable = ()):
        self.current_status = current_status
        self.requested_status = requested_status
        self.valid_next_states = sorted(valid_next_states, key=lambda s: s.value)
        allowed = ", ".join(s.value for s in self.valid_next_states) or "none"
        super().__init__(
            f"Cannot transition session from {current_status.value} to "
            f"{requested_status.value} (valid next states: {allowed})"
        )


class PreconditionFailedError(SessionLifecycleError):
    """The edge is permitted but the session does not satisfy its precondition."""

    code = ErrorCode.PRECONDITION_FAILED


class ConcurrentModificationError(SessionLifecycleError):
    """Another caller changed the status between read and write."""

    code = ErrorCode.CONCURRENT_MODIFICATION

    def __init__(self, session_id: str, expected_status, actual_status=None):
        self.session_id = session_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        actual = actual_status.value if actual_status is not None else "unknown"
        super().__init__(
            f"Session {session_id} status changed unexpectedly "
            f"(expected {expected_status.value}, current status: {actual})"
        )


class ValidationError(SessionLifecycleError):
    """Booking or assignment input is missing or invalid."""

    code = ErrorCode.VALIDATION_ERROR


class ForbiddenError(SessionLifecycleError):
    """The caller's role may not perform the operation."""

    code = ErrorCode.FORBIDDEN


class ConflictError(SessionLifecycleError):
    """A store-level conditional write was rejected.

    Raised by session stores; the engine translates it into
    ConcurrentModificationError for status changes.
    """

    code = ErrorCode.STORE_CONFLICT

    def __init__(self, session_id: str, expected_status=None, actual_status=None, message: Optional[str] = None):
        self.session_id = session_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        if message is None:
            expected = expected_status.value if expected_status is not None else "n/a"
            actual = actual_status.value if actual_status is not None else "unknown"
            message = (
                f"Conditional write on session {session_id} rejected "
                f"(expected status {expected}, stored status {actual})"
            )
        super().__init__(message)


class StoreError(SessionLifecycleError):
    """The persistence store failed for a reason other than a conflict."""

    code = ErrorCode.STORE_ERROR


class IdempotencyKeyError(SessionLifecycleError):
    """The Idempotency-Key header is malformed."""

    code = ErrorCode.INVALID_IDEMPOTENCY_KEY


class IdempotencyConflictError(SessionLifecycleError):
    """The idempotency key is in use by a different or unfinished request."""

    code = ErrorCode.IDEMPOTENCY_KEY_CONFLICT

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Idempotency key {key} is already in use")
