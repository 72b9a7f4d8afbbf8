"""Session entities for the tutoring session lifecycle."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SessionStatus(str, Enum):
    """Session status enum."""
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.NO_SHOW, SessionStatus.CANCELLED}
)


class TutoringSession(BaseModel):
    """Session entity representing one scheduled tutor-student interaction."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "12345678-1234-5678-1234-567812345678",
                "status": "SCHEDULED",
                "scheduled_at": "2026-10-20T15:00:00Z",
                "tutor_id": "tutor-7",
                "student_id": "student-42",
            }
        }
    )

    id: UUID = Field(default_factory=uuid.uuid4)
    status: SessionStatus = SessionStatus.SCHEDULED
    scheduled_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    tutor_id: Optional[str] = None
    student_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("scheduled_at", "started_at", "ended_at", "created_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @property
    def session_id(self) -> str:
        return str(self.id)

    @property
    def has_tutor(self) -> bool:
        return bool(self.tutor_id and self.tutor_id.strip())


class BookingRequest(BaseModel):
    """Input for booking a new session.

    Fields are optional at the model level so that missing values reach the
    engine's own validation and are reported as booking errors.
    """

    tutor_id: Optional[str] = None
    student_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
