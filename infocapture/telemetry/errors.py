"""Structured error telemetry helpers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any


class InfoCaptureError(Exception):
    """Base class for errors raised by session and listening operations."""


class ErrorCode(str, Enum):
    """Canonical error codes for operational telemetry."""

    SPEECH_SOURCE_FAILED = "SPEECH_SOURCE_FAILED"
    SPEECH_SOURCE_RESTART_EXHAUSTED = "SPEECH_SOURCE_RESTART_EXHAUSTED"
    SIGNAL_SUBSCRIBER_FAILURE = "SIGNAL_SUBSCRIBER_FAILURE"
    API_WEBSOCKET_SEND_FAILED = "API_WEBSOCKET_SEND_FAILED"
    SESSION_PERSIST_FAILED = "SESSION_PERSIST_FAILED"


def emit_structured_error(
    logger: logging.Logger,
    *,
    code: ErrorCode,
    message: str,
    suppressed: bool,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a structured telemetry event via logging."""
    logger.error(
        "infocapture_error",
        extra={
            "error_code": code,
            "error_message": message,
            "suppressed": suppressed,
            "session_id": session_id,
            "details": details or {},
        },
    )
