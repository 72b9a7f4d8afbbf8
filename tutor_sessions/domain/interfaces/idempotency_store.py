"""Idempotency Store interface."""

from typing import Any, Optional, Protocol, runtime_checkable

from ..entities.idempotency_record import IdempotencyRecord


@runtime_checkable
class IdempotencyStore(Protocol):
    """Protocol for storing idempotency records keyed by Idempotency-Key."""

    async def get_record(self, key: str) -> Optional[IdempotencyRecord]:
        """Return the stored record for ``key``, or None if there is none."""
        ...

    async def create_record(self, record: IdempotencyRecord) -> None:
        """Claim ``record.key``.

        The put is conditional: it succeeds only if no record exists for the
        key or the stored one expired before ``record.created_at``.

        Raises:
            IdempotencyConflictError: If an unexpired record holds the key.
        """
        ...

    async def complete_record(self, key: str, response: dict[str, Any]) -> None:
        """Attach the response body to a claimed record."""
        ...

    async def delete_record(self, key: str) -> None:
        """Release a claim so the key can be used again."""
        ...
