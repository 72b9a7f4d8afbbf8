"""Idempotency-Key handling for write endpoints.

A request carrying a key first claims it in the idempotency store. Repeats
of the same request from the same caller get the stored response back; a
key reused for a different request, or repeated while the first is still
running, is rejected.
"""

import hashlib
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from pydantic import BaseModel

from ..domain.entities import Actor, IdempotencyRecord, utc_now
from ..domain.errors import IdempotencyConflictError, IdempotencyKeyError, StoreError
from ..domain.interfaces.idempotency_store import IdempotencyStore

logger = logging.getLogger(__name__)

IDEMPOTENCY_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,128}$")
DEFAULT_IDEMPOTENCY_TTL = timedelta(hours=24)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def hash_request(payload: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``payload``."""
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class IdempotencyService:
    """Runs write handlers at most once per Idempotency-Key."""

    def __init__(
        self,
        store: IdempotencyStore,
        ttl: timedelta = DEFAULT_IDEMPOTENCY_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.ttl = ttl
        self._clock = clock

    async def run(
        self,
        key: Optional[str],
        operation: str,
        actor: Actor,
        payload: Mapping[str, Any],
        handler: Callable[[], Awaitable[ResponseT]],
        response_model: type[ResponseT],
    ) -> ResponseT:
        """
        Run ``handler`` once for ``key``, replaying its response on repeats.

        Requests without a key run unguarded.

        Raises:
            IdempotencyKeyError: If the key is malformed
            IdempotencyConflictError: If the key belongs to a different request
                or the first request with this key has not finished
        """
        if key is None:
            return await handler()
        if not IDEMPOTENCY_KEY_PATTERN.match(key):
            raise IdempotencyKeyError(
                "Idempotency-Key must be 8-128 characters of letters, digits, '-' or '_'"
            )

        now = self._clock()
        claim = IdempotencyRecord(
            key=key,
            operation=operation,
            user_id=actor.user_id,
            request_hash=hash_request(payload),
            created_at=now,
            expires_at=now + self.ttl,
        )

        try:
            await self.store.create_record(claim)
        except IdempotencyConflictError:
            existing = await self.store.get_record(key)
            if existing is None:
                raise
            return self._replay(existing, claim, response_model)

        try:
            response = await handler()
        except Exception:
            await self._release(key)
            raise

        try:
            await self.store.complete_record(key, response.model_dump(mode="json"))
        except StoreError as e:
            logger.warning(f"Failed to save response for idempotency key {key}: {e}", exc_info=True)
        return response

    def _replay(
        self,
        existing: IdempotencyRecord,
        claim: IdempotencyRecord,
        response_model: type[ResponseT],
    ) -> ResponseT:
        if not existing.matches(claim):
            logger.warning(f"Idempotency key {claim.key} reused for a different {claim.operation} request")
            raise IdempotencyConflictError(
                claim.key, "Idempotency key already used for a different request"
            )
        if not existing.is_complete:
            raise IdempotencyConflictError(
                claim.key, "A request with this idempotency key is still being processed"
            )

        logger.info(f"Replaying stored {claim.operation} response for idempotency key {claim.key}")
        return response_model.model_validate(existing.response)

    async def _release(self, key: str) -> None:
        try:
            await self.store.delete_record(key)
        except StoreError as e:
            logger.warning(f"Failed to release idempotency key {key}: {e}", exc_info=True)
