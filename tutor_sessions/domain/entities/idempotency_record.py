"""Idempotency record entity."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .tutoring_session import as_utc, utc_now


class IdempotencyRecord(BaseModel):
    """A write request claimed under an Idempotency-Key.

    The record is created before the request runs, with ``response`` unset,
    and completed with the response body once the request succeeds.
    """

    key: str
    operation: str
    user_id: Optional[str] = None
    request_hash: str
    response: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime

    @field_validator("created_at", "expires_at")
    @classmethod
    def _normalize_timestamps(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def is_complete(self) -> bool:
        return self.response is not None

    def matches(self, other: "IdempotencyRecord") -> bool:
        """True if ``other`` is the same caller repeating the same request."""
        return (
            self.operation == other.operation
            and self.user_id == other.user_id
            and self.request_hash == other.request_hash
        )
