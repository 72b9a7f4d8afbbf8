"""HTTP request and response models for the session lifecycle API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..errors import ErrorCode
from .lifecycle_event import SessionLifecycleEvent
from .tutoring_session import SessionStatus, TutoringSession


# ===== Requests =====


class StatusChangeRequest(BaseModel):
    """Request to move a session to a new status."""

    status: SessionStatus
    expected_status: Optional[SessionStatus] = Field(
        default=None,
        description="Status the caller last saw; the change is rejected if it no longer matches",
    )
    reason: Optional[str] = None


class AssignTutorRequest(BaseModel):
    """Request to assign a tutor to a scheduled session."""

    tutor_id: str


# ===== Responses =====


class SessionResponse(BaseModel):
    """Session as returned by the API."""

    id: str
    status: SessionStatus
    scheduled_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    tutor_id: Optional[str] = None
    student_id: Optional[str] = None

    @classmethod
    def from_session(cls, session: TutoringSession) -> "SessionResponse":
        return cls(
            id=session.session_id,
            status=session.status,
            scheduled_at=session.scheduled_at,
            started_at=session.started_at,
            ended_at=session.ended_at,
            tutor_id=session.tutor_id,
            student_id=session.student_id,
        )


class TransitionOptions(BaseModel):
    """Current status of a session and the statuses it may move to next."""

    session_id: str
    current_status: SessionStatus
    valid_next_states: list[SessionStatus]


class SessionHistory(BaseModel):
    """Lifecycle events recorded for a session, oldest first."""

    session_id: str
    events: list[SessionLifecycleEvent]


class NoShowSweepResult(BaseModel):
    """Outcome of one no-show sweep."""

    marked: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error body returned for every engine failure."""

    code: ErrorCode
    message: str
    current_status: Optional[SessionStatus] = None
    valid_next_states: Optional[list[SessionStatus]] = None
