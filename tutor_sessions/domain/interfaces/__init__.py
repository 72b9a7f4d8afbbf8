"""Domain interfaces for the tutoring session lifecycle."""

from .idempotency_store import IdempotencyStore
from .lifecycle_audit_log import LifecycleAuditLog
from .session_store import SessionStore

__all__ = ["IdempotencyStore", "LifecycleAuditLog", "SessionStore"]
