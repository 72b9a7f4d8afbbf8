"""Local in-memory implementation of the Idempotency Store."""

import asyncio
from typing import Any, Dict, Optional

from ..domain.entities.idempotency_record import IdempotencyRecord
from ..domain.errors import IdempotencyConflictError
from ..domain.interfaces.idempotency_store import IdempotencyStore


class LocalIdempotencyStore(IdempotencyStore):
    """Keeps idempotency records in a dictionary for testing and development."""

    def __init__(self):
        self._records: Dict[str, IdempotencyRecord] = {}
        self._lock = asyncio.Lock()

    async def get_record(self, key: str) -> Optional[IdempotencyRecord]:
        record = self._records.get(key)
        return record.model_copy() if record else None

    async def create_record(self, record: IdempotencyRecord) -> None:
        async with self._lock:
            existing = self._records.get(record.key)
            if existing is not None and existing.expires_at > record.created_at:
                raise IdempotencyConflictError(record.key)
            self._records[record.key] = record.model_copy()

    async def complete_record(self, key: str, response: dict[str, Any]) -> None:
        async with self._lock:
            record = self._records.get(key)
            if record is not None:
                self._records[key] = record.model_copy(update={"response": dict(response)})

    async def delete_record(self, key: str) -> None:
        async with self._lock:
            self._records.pop(key, None)

    def clear(self) -> None:
        """Clear all records."""
        self._records.clear()
