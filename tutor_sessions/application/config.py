"""Application configuration using Pydantic Settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "tutor-session-lifecycle"
    app_version: str = "0.1.0"
    debug: bool = False

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Storage backend
    session_store_backend: Literal["local", "dynamodb"] = "local"

    # AWS settings for the DynamoDB backend
    aws_region: str = "us-east-1"
    sessions_table_name: str = "TutoringSessions"
    lifecycle_events_table_name: str = "SessionLifecycleEvents"
    idempotency_table_name: str = "IdempotencyRecords"

    # Lifecycle policy
    booking_grace_minutes: int = 5
    no_show_grace_minutes: int = 15
    cancellation_notice_minutes: int = 120
    idempotency_ttl_hours: int = 24


# Create a singleton instance
settings = Settings()
