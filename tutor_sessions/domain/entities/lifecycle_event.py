"""Lifecycle audit entities and caller identity."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .tutoring_session import SessionStatus, utc_now


class ActorRole(str, Enum):
    """Role of whoever triggered a lifecycle change."""
    SYSTEM = "SYSTEM"
    STUDENT = "STUDENT"
    TUTOR = "TUTOR"
    ADMIN = "ADMIN"


class Actor(BaseModel):
    """Caller identity handed to the access policy.

    The role is supplied by an upstream auth layer and taken as known.
    """

    role: ActorRole
    user_id: Optional[str] = None


class SessionLifecycleEvent(BaseModel):
    """Audit record of a booking, status transition or tutor assignment."""

    id: UUID = Field(default_factory=uuid.uuid4)
    session_id: str
    student_id: Optional[str] = None
    tutor_id: Optional[str] = None
    old_status: Optional[SessionStatus] = None
    new_status: SessionStatus
    triggered_by: ActorRole = ActorRole.SYSTEM
    actor_id: Optional[str] = None
    reason: Optional[str] = None
    occurred_at: datetime = Field(default_factory=utc_now)

    @property
    def action(self) -> str:
        if self.old_status == self.new_status:
            detail = self.reason or "no status change"
            return f"Session updated in {self.new_status.value}: {detail}"
        old = self.old_status.value if self.old_status else "N/A"
        return f"Session status changed from {old} to {self.new_status.value}"
