"""Structured logging configuration."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_STRUCTURED_KEYS = (
    "event",
    "context",
    "error_code",
    "error_message",
    "suppressed",
    "session_id",
    "details",
)


class JsonFormatter(logging.Formatter):
    """Simple JSON log formatter that keeps structured ``extra`` keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        for key in _STRUCTURED_KEYS:
            value = record.__dict__.get(key)
            if value is not None and value != {}:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger to emit JSON lines on stderr."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    logger = logging.getLogger()
    logger.setLevel(level.upper())
    logger.handlers.clear()
    logger.addHandler(handler)
