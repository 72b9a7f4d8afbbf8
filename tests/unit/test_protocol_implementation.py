"""Test that store implementations conform to the store and audit log protocols."""

import pytest

from tutor_sessions.domain.interfaces import IdempotencyStore, LifecycleAuditLog, SessionStore
from tutor_sessions.infrastructure import (
    DynamoDBIdempotencyStore,
    DynamoDBLifecycleAuditLog,
    DynamoDBSessionStore,
    LocalIdempotencyStore,
    LocalLifecycleAuditLog,
    LocalSessionStore,
)

SESSION_STORE_METHODS = ["read_session", "create_session", "conditional_update_session", "list_sessions"]


def test_local_store_implements_protocol():
    """Test that LocalSessionStore implements the SessionStore protocol."""
    store = LocalSessionStore()

    assert isinstance(store, SessionStore)
    for name in SESSION_STORE_METHODS:
        assert callable(getattr(store, name))


def test_dynamodb_store_implements_protocol():
    """Test that DynamoDBSessionStore implements the SessionStore protocol."""
    store = DynamoDBSessionStore("test-table")

    assert isinstance(store, SessionStore)
    for name in SESSION_STORE_METHODS:
        assert callable(getattr(store, name))


@pytest.mark.parametrize("audit_log", [LocalLifecycleAuditLog(), DynamoDBLifecycleAuditLog("test-events")])
def test_audit_logs_implement_protocol(audit_log):
    assert isinstance(audit_log, LifecycleAuditLog)
    assert callable(audit_log.record)
    assert callable(audit_log.list_events)


def test_audit_log_is_not_a_session_store():
    assert not isinstance(LocalLifecycleAuditLog(), SessionStore)


@pytest.mark.parametrize("store", [LocalIdempotencyStore(), DynamoDBIdempotencyStore("test-idempotency")])
def test_idempotency_stores_implement_protocol(store):
    assert isinstance(store, IdempotencyStore)
    for name in ["get_record", "create_record", "complete_record", "delete_record"]:
        assert callable(getattr(store, name))
