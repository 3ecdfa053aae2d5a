"""Signal type definitions for capture sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SignalType(str, Enum):
    """All signal types emitted during a capture session."""

    CHUNK_PROCESSED = "CHUNK_PROCESSED"
    FIELD_MATCHED = "FIELD_MATCHED"
    FIELD_EDITED = "FIELD_EDITED"
    TRANSCRIPT_EDITED = "TRANSCRIPT_EDITED"
    REGISTRY_UPDATED = "REGISTRY_UPDATED"
    LISTENING_STARTED = "LISTENING_STARTED"
    LISTENING_STOPPED = "LISTENING_STOPPED"
    SOURCE_RESTARTED = "SOURCE_RESTARTED"
    SOURCE_ERROR = "SOURCE_ERROR"
    SESSION_SAVED = "SESSION_SAVED"


class Signal(BaseModel):
    """An immutable signal emitted during a capture session.

    Every chunk, match, and user edit produces a Signal.
    Signals are append-only and cannot be modified after emission.
    """

    sequence: int = Field(description="Monotonic sequence number within the session")
    signal_type: SignalType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}
