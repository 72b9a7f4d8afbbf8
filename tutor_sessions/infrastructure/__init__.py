"""Infrastructure layer components."""

from .dynamodb_audit_log import DynamoDBLifecycleAuditLog
from .dynamodb_idempotency_store import DynamoDBIdempotencyStore
from .dynamodb_session_store import DynamoDBSessionStore
from .local_audit_log import LocalLifecycleAuditLog
from .local_idempotency_store import LocalIdempotencyStore
from .local_session_store import LocalSessionStore

__all__ = [
    "DynamoDBLifecycleAuditLog",
    "DynamoDBIdempotencyStore",
    "DynamoDBSessionStore",
    "LocalLifecycleAuditLog",
    "LocalIdempotencyStore",
    "LocalSessionStore",
]
