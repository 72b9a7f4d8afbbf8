"""Builds the stores, audit log and services for the configured backend."""

import logging
from datetime import timedelta

from ..domain.interfaces.idempotency_store import IdempotencyStore
from ..domain.interfaces.lifecycle_audit_log import LifecycleAuditLog
from ..domain.interfaces.session_store import SessionStore
from ..domain.services.session_lifecycle_service import SessionLifecycleService
from ..infrastructure.dynamodb_audit_log import DynamoDBLifecycleAuditLog
from ..infrastructure.dynamodb_idempotency_store import DynamoDBIdempotencyStore
from ..infrastructure.dynamodb_session_store import DynamoDBSessionStore
from ..infrastructure.local_audit_log import LocalLifecycleAuditLog
from ..infrastructure.local_idempotency_store import LocalIdempotencyStore
from ..infrastructure.local_session_store import LocalSessionStore
from .config import Settings
from .idempotency import IdempotencyService

logger = logging.getLogger(__name__)


def build_session_store(settings: Settings) -> SessionStore:
    if settings.session_store_backend == "dynamodb":
        logger.info(f"Using DynamoDB session store (table {settings.sessions_table_name})")
        return DynamoDBSessionStore(
            table_name=settings.sessions_table_name,
            region_name=settings.aws_region,
        )
    logger.info("Using local in-memory session store")
    return LocalSessionStore()


def build_audit_log(settings: Settings) -> LifecycleAuditLog:
    if settings.session_store_backend == "dynamodb":
        return DynamoDBLifecycleAuditLog(
            table_name=settings.lifecycle_events_table_name,
            region_name=settings.aws_region,
        )
    return LocalLifecycleAuditLog()


def build_idempotency_store(settings: Settings) -> IdempotencyStore:
    if settings.session_store_backend == "dynamodb":
        return DynamoDBIdempotencyStore(
            table_name=settings.idempotency_table_name,
            region_name=settings.aws_region,
        )
    return LocalIdempotencyStore()


def build_lifecycle_service(
    settings: Settings,
    session_store: SessionStore,
    audit_log: LifecycleAuditLog,
) -> SessionLifecycleService:
    return SessionLifecycleService(
        session_store=session_store,
        audit_log=audit_log,
        booking_grace=timedelta(minutes=settings.booking_grace_minutes),
        no_show_grace=timedelta(minutes=settings.no_show_grace_minutes),
    )


def build_idempotency_service(settings: Settings, store: IdempotencyStore) -> IdempotencyService:
    return IdempotencyService(store, ttl=timedelta(hours=settings.idempotency_ttl_hours))
