"""Tests for Idempotency-Key handling."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from tutor_sessions.application.idempotency import IdempotencyService, hash_request
from tutor_sessions.domain.entities import (
    Actor,
    ActorRole,
    IdempotencyRecord,
    SessionResponse,
    SessionStatus,
)
from tutor_sessions.domain.errors import (
    IdempotencyConflictError,
    IdempotencyKeyError,
    StoreError,
    ValidationError,
)
from tutor_sessions.infrastructure import LocalIdempotencyStore

from conftest import FIXED_NOW

KEY = "booking-key-0001"
STUDENT = Actor(role=ActorRole.STUDENT, user_id="S1")
PAYLOAD = {"student_id": "S1", "scheduled_at": "2026-10-20T12:00:00+00:00"}


def _response(session_id: str = "session-1") -> SessionResponse:
    return SessionResponse(
        id=session_id,
        status=SessionStatus.SCHEDULED,
        scheduled_at=datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc),
        student_id="S1",
    )


@pytest.fixture
def idempotency_store():
    return LocalIdempotencyStore()


@pytest.fixture
def idempotency(idempotency_store, clock):
    return IdempotencyService(idempotency_store, ttl=timedelta(hours=24), clock=clock)


def test_hash_request_ignores_key_order():
    assert hash_request({"a": 1, "b": 2}) == hash_request({"b": 2, "a": 1})
    assert hash_request({"a": 1}) != hash_request({"a": 2})


class TestIdempotencyService:

    @pytest.mark.asyncio
    async def test_without_key_handler_always_runs(self, idempotency):
        handler = AsyncMock(return_value=_response())

        await idempotency.run(None, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)
        await idempotency.run(None, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        assert handler.await_count == 2

    @pytest.mark.asyncio
    async def test_repeated_key_replays_first_response(self, idempotency):
        handler = AsyncMock(side_effect=[_response("session-1"), _response("session-2")])

        first = await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)
        second = await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        assert first.id == "session-1"
        assert second == first
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_key_with_different_body_rejected(self, idempotency):
        handler = AsyncMock(return_value=_response())
        await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        other_payload = dict(PAYLOAD, scheduled_at="2026-10-21T12:00:00+00:00")
        with pytest.raises(IdempotencyConflictError, match="different request"):
            await idempotency.run(KEY, "book_session", STUDENT, other_payload, handler, SessionResponse)

        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_key_from_another_user_rejected(self, idempotency):
        handler = AsyncMock(return_value=_response())
        await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        other = Actor(role=ActorRole.STUDENT, user_id="S2")
        with pytest.raises(IdempotencyConflictError):
            await idempotency.run(KEY, "book_session", other, PAYLOAD, handler, SessionResponse)

    @pytest.mark.asyncio
    async def test_unfinished_request_rejected(self, idempotency, idempotency_store, clock):
        await idempotency_store.create_record(
            IdempotencyRecord(
                key=KEY,
                operation="book_session",
                user_id="S1",
                request_hash=hash_request(PAYLOAD),
                created_at=clock.now,
                expires_at=clock.now + timedelta(hours=24),
            )
        )
        handler = AsyncMock(return_value=_response())

        with pytest.raises(IdempotencyConflictError, match="still being processed"):
            await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        handler.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["short", "has spaces in it", "x" * 129, "semi;colon-key"])
    async def test_malformed_key_rejected(self, idempotency, key):
        handler = AsyncMock(return_value=_response())

        with pytest.raises(IdempotencyKeyError):
            await idempotency.run(key, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_request_releases_key(self, idempotency, idempotency_store):
        handler = AsyncMock(side_effect=[ValidationError("scheduled_at is required"), _response()])

        with pytest.raises(ValidationError):
            await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)
        assert await idempotency_store.get_record(KEY) is None

        retried = await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)
        assert retried.id == "session-1"

    @pytest.mark.asyncio
    async def test_expired_key_can_be_reused(self, idempotency, clock):
        handler = AsyncMock(side_effect=[_response("session-1"), _response("session-2")])

        await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)
        clock.advance(hours=25)
        second = await idempotency.run(KEY, "book_session", STUDENT, PAYLOAD, handler, SessionResponse)

        assert second.id == "session-2"

    @pytest.mark.asyncio
    async def test_response_save_failure_does_not_fail_request(self, clock):
        store = AsyncMock()
        store.complete_record.side_effect = StoreError("table unavailable")
        idempotency = IdempotencyService(store, clock=clock)

        response = await idempotency.run(
            KEY, "book_session", STUDENT, PAYLOAD, AsyncMock(return_value=_response()), SessionResponse
        )

        assert response.id == "session-1"
        store.create_record.assert_awaited_once()


@pytest.mark.asyncio
async def test_local_store_conflict_only_while_unexpired(idempotency_store):
    record = IdempotencyRecord(
        key=KEY,
        operation="book_session",
        request_hash="abc",
        created_at=FIXED_NOW,
        expires_at=FIXED_NOW + timedelta(hours=1),
    )
    await idempotency_store.create_record(record)

    with pytest.raises(IdempotencyConflictError):
        await idempotency_store.create_record(record.model_copy(update={"created_at": FIXED_NOW + timedelta(minutes=59)}))

    later = record.model_copy(
        update={"created_at": FIXED_NOW + timedelta(hours=2), "expires_at": FIXED_NOW + timedelta(hours=3)}
    )
    await idempotency_store.create_record(later)
    await idempotency_store.complete_record(KEY, {"id": "session-1"})

    stored = await idempotency_store.get_record(KEY)
    assert stored.created_at == later.created_at
    assert stored.response == {"id": "session-1"}
    assert stored.is_complete
