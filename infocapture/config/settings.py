"""InfoCapture configuration settings."""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

DEFAULT_FIELDS: tuple[str, ...] = (
    "date of birth",
    "first name",
    "last name",
    "address",
    "beneficiary",
    "beneficiary phone number",
    "client address",
)


class ExtractionConfig(BaseModel):
    """Field registry and capture rule configuration."""

    default_fields: tuple[str, ...] = DEFAULT_FIELDS
    max_custom_fields: int = 3
    history_capacity: int = 5
    capture_window: int = 2

    @field_validator("default_fields")
    @classmethod
    def _validate_default_fields(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("default_fields cannot be empty")
        seen: set[str] = set()
        for label in value:
            normalized = label.strip().lower()
            if not normalized:
                raise ValueError("default_fields cannot contain blank labels")
            if normalized in seen:
                raise ValueError(f"Duplicate default field: {label!r}")
            seen.add(normalized)
        return value

    @field_validator("max_custom_fields", "history_capacity", "capture_window")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value


class ListeningConfig(BaseModel):
    """Speech source supervision settings."""

    language: str = "en-US"
    restart_on_end: bool = True
    max_restarts: int = Field(
        default_factory=lambda: int(os.getenv("INFOCAPTURE_MAX_RESTARTS", "50"))
    )
    restart_backoff_ms: int = 250
    restart_backoff_max_ms: int = 5000

    @field_validator("max_restarts")
    @classmethod
    def _validate_max_restarts(cls, value: int) -> int:
        if value < 0:
            raise ValueError("INFOCAPTURE_MAX_RESTARTS must be >= 0")
        return value


class UsageConfig(BaseModel):
    """Free tier limits."""

    free_session_limit: int = Field(
        default_factory=lambda: int(os.getenv("INFOCAPTURE_FREE_LIMIT", "3"))
    )
    pro_price_usd: int = 47

    @field_validator("free_session_limit")
    @classmethod
    def _validate_free_limit(cls, value: int) -> int:
        if value < 0:
            raise ValueError("INFOCAPTURE_FREE_LIMIT must be >= 0")
        return value


class StoreConfig(BaseModel):
    """Saved session storage."""

    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("INFOCAPTURE_DATA_DIR", "./data"))
    )
    max_saved_sessions: int = Field(
        default_factory=lambda: int(os.getenv("INFOCAPTURE_MAX_SAVED_SESSIONS", "200"))
    )

    @field_validator("max_saved_sessions")
    @classmethod
    def _validate_retention_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("INFOCAPTURE_MAX_SAVED_SESSIONS must be >= 1")
        return value


class APIConfig(BaseModel):
    """API/security controls from environment."""

    api_token: str = Field(default_factory=lambda: os.getenv("INFOCAPTURE_API_TOKEN", ""))
    allowed_origins: list[str] = Field(
        default_factory=lambda: APIConfig.parse_allowed_origins(
            os.getenv("INFOCAPTURE_ALLOWED_ORIGINS", "")
        )
    )

    @staticmethod
    def parse_allowed_origins(value: str) -> list[str]:
        if not value.strip():
            return ["http://localhost", "http://127.0.0.1"]
        origins = [origin.strip() for origin in value.split(",") if origin.strip()]
        if "*" in origins:
            raise ValueError("INFOCAPTURE_ALLOWED_ORIGINS cannot include '*'")
        return origins

    @field_validator("allowed_origins")
    @classmethod
    def _validate_allowed_origins(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("allowed_origins cannot be empty")
        for origin in value:
            parsed = urlparse(origin)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValueError(f"Invalid CORS origin: {origin}")
        return value


class InfoCaptureConfig(BaseModel):
    """Root configuration for an InfoCapture service."""

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    listening: ListeningConfig = Field(default_factory=ListeningConfig)
    usage: UsageConfig = Field(default_factory=UsageConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    log_level: str = Field(default_factory=lambda: os.getenv("INFOCAPTURE_LOG_LEVEL", "INFO"))
