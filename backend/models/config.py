import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development picks up `backend/.env` automatically. Under pytest or
    in CI the file is ignored so tests that rely on a missing SECRET_KEY keep
    failing fast.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    DATABASE_URL: str = "sqlite:///./data/complaintdesk.db"
    SECRET_KEY: str = Field(
        ...,  # Required, no default
        description="Secret shared with the identity provider to verify bearer tokens",
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    # Bootstrap admin (used by init_db.py). Optional: when ADMIN_EMAIL is empty
    # no admin profile is created.
    ADMIN_EMAIL: str = Field(
        default="",
        description="E-mail of the first admin profile created by init_db.py",
    )
    ADMIN_FULL_NAME: str = Field(
        default="Administrator",
        description="Full name of the bootstrap admin profile",
    )
    ADMIN_PRINCIPAL_ID: str = Field(
        default="",
        description="Principal id issued by the identity provider for the bootstrap admin",
    )

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    # Performance settings
    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    LOG_DIR: str = Field(
        default="logs",
        description="Directory for the rotating application log file",
    )

    # Attachment storage
    ATTACHMENT_STORAGE_DIR: str = Field(
        default="./data/attachments",
        description="Root directory of the owner-namespaced attachment blob store",
    )
    ATTACHMENT_MAX_BYTES: int = Field(
        default=10_485_760,
        description="Maximum attachment size in bytes (10 MB)",
    )
    ATTACHMENT_ALLOWED_MIME_TYPES: List[str] = Field(
        default=["application/pdf", "image/jpeg", "image/png"],
        description="MIME types accepted for complaint attachments",
    )

    # Identity
    ROLE_CACHE_TTL_SECONDS: int = Field(
        default=60,
        description="How long a resolved role set is cached per principal (0 disables)",
    )

    # Rate limits (slowapi syntax)
    COMPLAINT_CREATE_RATE_LIMIT: str = Field(
        default="10/minute",
        description="Per-client limit for complaint submission",
    )
    ATTACHMENT_UPLOAD_RATE_LIMIT: str = Field(
        default="10/minute",
        description="Per-client limit for attachment uploads",
    )

    @field_validator("CORS_ORIGINS", "ATTACHMENT_ALLOWED_MIME_TYPES", mode="before")
    @classmethod
    def parse_csv_list(cls, v: str | List[str]) -> List[str]:
        """Parse list settings from comma-separated strings."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN) without validation errors
    )


# Instantiating Settings() raises pydantic.ValidationError if SECRET_KEY isn't set.
settings = Settings()  # type: ignore[call-arg]


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
