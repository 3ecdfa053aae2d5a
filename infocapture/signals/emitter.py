"""Signal emitter for a single capture session.

Handles emission, persistence, and streaming of Signals.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from infocapture.signals.types import Signal, SignalType
from infocapture.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)


class SignalEmitter:
    """Emits, persists, and broadcasts signals for a single session.

    Signals are:
    - Immutable once emitted
    - Assigned monotonic sequence numbers
    - Persisted to a JSONL ledger in append-only mode
    - Streamed to subscribers (WebSocket clients) in real time
    """

    def __init__(self, session_id: str, ledger_path: Path | None = None) -> None:
        self._session_id = session_id
        self._sequence = 0
        self._ledger_path = ledger_path
        self._subscribers: list[Callable[[Signal], Any]] = []
        self._signals: list[Signal] = []
        self._lock = asyncio.Lock()

        if self._ledger_path:
            self._ledger_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def signals(self) -> list[Signal]:
        """Return all emitted signals (read-only copy)."""
        return list(self._signals)

    def subscribe(self, callback: Callable[[Signal], Any]) -> None:
        """Register a subscriber for real-time signal streaming."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Signal], Any]) -> None:
        """Remove a subscriber."""
        self._subscribers = [s for s in self._subscribers if s is not callback]

    async def emit(self, signal_type: SignalType, payload: dict[str, Any] | None = None) -> Signal:
        """Emit a signal. This is the ONLY way to create signals."""
        async with self._lock:
            self._sequence += 1
            signal = Signal(
                sequence=self._sequence,
                signal_type=signal_type,
                timestamp=datetime.now(timezone.utc),
                session_id=self._session_id,
                payload=payload or {},
            )
            self._signals.append(signal)

        if self._ledger_path:
            self._persist(signal)

        await self._broadcast(signal)

        return signal

    def _persist(self, signal: Signal) -> None:
        """Append signal to the JSONL ledger file."""
        self._ledger_path.parent.mkdir(parents=True, exist_ok=True)
        line = signal.model_dump_json() + "\n"
        with open(self._ledger_path, "a") as f:
            f.write(line)

    async def _broadcast(self, signal: Signal) -> None:
        """Notify all subscribers of a new signal."""
        for subscriber in self._subscribers:
            try:
                result = subscriber(signal)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                # Subscribers must not break the emission pipeline
                emit_structured_error(
                    logger,
                    code=ErrorCode.SIGNAL_SUBSCRIBER_FAILURE,
                    message=str(exc),
                    suppressed=True,
                    session_id=self._session_id,
                    details={"signal_type": signal.signal_type.value},
                )

    async def emit_chunk_processed(
        self, chunk: str, matched_labels: list[str], transcript_length: int
    ) -> Signal:
        """Convenience: emit a CHUNK_PROCESSED signal."""
        return await self.emit(
            SignalType.CHUNK_PROCESSED,
            {
                "chunk": chunk,
                "matched_labels": matched_labels,
                "transcript_length": transcript_length,
            },
        )

    async def emit_field_matched(self, label: str, value: str, anchor_index: int) -> Signal:
        """Convenience: emit a FIELD_MATCHED signal."""
        return await self.emit(
            SignalType.FIELD_MATCHED,
            {"label": label, "value": value, "anchor_index": anchor_index},
        )

    async def emit_listening_change(
        self, listening: bool, context: dict[str, Any] | None = None
    ) -> Signal:
        """Convenience: emit LISTENING_STARTED or LISTENING_STOPPED."""
        signal_type = SignalType.LISTENING_STARTED if listening else SignalType.LISTENING_STOPPED
        return await self.emit(signal_type, {"listening": listening, **(context or {})})

    @staticmethod
    def load_ledger(ledger_path: Path) -> list[Signal]:
        """Load all signals from a JSONL ledger file."""
        signals = []
        if ledger_path.exists():
            with open(ledger_path) as f:
                for line in f:
                    line = line.strip()
                    if line:
                        signals.append(Signal.model_validate_json(line))
        return signals
