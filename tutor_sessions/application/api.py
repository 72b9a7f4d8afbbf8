"""FastAPI application entry point."""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from ..domain.entities import (
    Actor,
    ActorRole,
    AssignTutorRequest,
    BookingRequest,
    ErrorResponse,
    NoShowSweepResult,
    SessionHistory,
    SessionResponse,
    StatusChangeRequest,
    TransitionOptions,
)
from ..domain.errors import (
    ConcurrentModificationError,
    ConflictError,
    ForbiddenError,
    IdempotencyConflictError,
    IdempotencyKeyError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    SessionLifecycleError,
    StoreError,
    ValidationError,
)
from .config import settings
from .controller import SessionLifecycleController
from .providers import (
    build_audit_log,
    build_idempotency_service,
    build_idempotency_store,
    build_lifecycle_service,
    build_session_store,
)

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app instance
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Store handles are built once at startup and injected, never reached as globals by the engine
session_store = build_session_store(settings)
audit_log = build_audit_log(settings)
lifecycle_service = build_lifecycle_service(settings, session_store, audit_log)
idempotency_store = build_idempotency_store(settings)

controller = SessionLifecycleController(
    lifecycle_service=lifecycle_service,
    cancellation_notice=timedelta(minutes=settings.cancellation_notice_minutes),
    idempotency=build_idempotency_service(settings, idempotency_store),
)

_STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    PreconditionFailedError: status.HTTP_412_PRECONDITION_FAILED,
    ValidationError: 422,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    IdempotencyKeyError: status.HTTP_400_BAD_REQUEST,
    IdempotencyConflictError: status.HTTP_409_CONFLICT,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _to_http_exception(error: SessionLifecycleError) -> HTTPException:
    """Translate an engine error into an HTTPException with an ErrorResponse body."""
    body = ErrorResponse(code=error.code, message=error.message)
    if isinstance(error, InvalidTransitionError):
        body.current_status = error.current_status
        body.valid_next_states = list(error.valid_next_states)
    elif isinstance(error, ConcurrentModificationError):
        body.current_status = error.actual_status

    status_code = _STATUS_CODES.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"Store failure: {error}")
    return HTTPException(status_code=status_code, detail=body.model_dump(mode="json"))


def get_actor(x_actor_role: ActorRole, x_actor_id: Optional[str]) -> Actor:
    """Build the caller identity from the X-Actor-Role / X-Actor-Id headers."""
    return Actor(role=x_actor_role, user_id=x_actor_id)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return controller.get_health_status()


@app.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def book_session(
    booking: BookingRequest,
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
    idempotency_key: Optional[str] = Header(None),
):
    """Book a new session in the SCHEDULED state.

    Repeating the request with the same Idempotency-Key returns the session
    booked the first time.
    """
    try:
        return await controller.book_session(
            booking, get_actor(x_actor_role, x_actor_id), idempotency_key=idempotency_key
        )
    except SessionLifecycleError as e:
        raise _to_http_exception(e)


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
):
    try:
        return await controller.get_session(session_id, get_actor(x_actor_role, x_actor_id))
    except SessionLifecycleError as e:
        raise _to_http_exception(e)


@app.get("/sessions/{session_id}/transitions", response_model=TransitionOptions)
async def get_transition_options(
    session_id: str,
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
):
    """Current status and the statuses the session can move to next."""
    try:
        return await controller.get_transition_options(session_id, get_actor(x_actor_role, x_actor_id))
    except SessionLifecycleError as e:
        raise _to_http_exception(e)


@app.post("/sessions/{session_id}/status", response_model=SessionResponse)
async def change_session_status(
    session_id: str,
    request: StatusChangeRequest,
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
    idempotency_key: Optional[str] = Header(None),
):
    """Move a session to a new status.

    Returns 409 with the current status and valid next states when the edge is
    not permitted or another caller changed the session first.
    """
    try:
        return await controller.change_status(
            session_id,
            request,
            get_actor(x_actor_role, x_actor_id),
            idempotency_key=idempotency_key,
        )
    except SessionLifecycleError as e:
        raise _to_http_exception(e)


@app.post("/sessions/{session_id}/tutor", response_model=SessionResponse)
async def assign_tutor(
    session_id: str,
    request: AssignTutorRequest,
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
):
    try:
        return await controller.assign_tutor(
            session_id, request.tutor_id, get_actor(x_actor_role, x_actor_id)
        )
    except SessionLifecycleError as e:
        raise _to_http_exception(e)


@app.get("/sessions/{session_id}/history", response_model=SessionHistory)
async def get_session_history(
    session_id: str,
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
):
    try:
        return await controller.get_history(session_id, get_actor(x_actor_role, x_actor_id))
    except SessionLifecycleError as e:
        raise _to_http_exception(e)


@app.post("/sweeps/no-show", response_model=NoShowSweepResult)
async def run_no_show_sweep(
    x_actor_role: ActorRole = Header(...),
    x_actor_id: Optional[str] = Header(None),
):
    """Mark overdue SCHEDULED sessions as NO_SHOW."""
    try:
        return await controller.run_no_show_sweep(get_actor(x_actor_role, x_actor_id))
    except SessionLifecycleError as e:
        raise _to_http_exception(e)
