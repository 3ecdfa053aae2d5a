"""Single-writer owner of one session's state.

Chunk ingestion and user edits are applied one at a time under a lock by
replacing the ``SessionState`` value. Every change emits a Signal.
"""

from __future__ import annotations

import asyncio
import logging

from infocapture.config.settings import ListeningConfig
from infocapture.extraction.engine import ExtractionResult
from infocapture.session.state import SessionState
from infocapture.session.usage import UsagePolicy
from infocapture.signals.emitter import SignalEmitter
from infocapture.signals.types import SignalType
from infocapture.speech.source import SpeechSource
from infocapture.speech.supervisor import ListeningStateError, ListeningSupervisor

logger = logging.getLogger(__name__)


class CaptureSession:
    def __init__(
        self,
        state: SessionState,
        usage: UsagePolicy | None = None,
        signals: SignalEmitter | None = None,
        owner: str = "",
    ) -> None:
        self._state = state
        self._usage = usage or UsagePolicy()
        self._signals = signals or SignalEmitter(session_id=state.session_id)
        self._owner = owner
        self._lock = asyncio.Lock()
        self._supervisor: ListeningSupervisor | None = None
        self._listening = False

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def signals(self) -> SignalEmitter:
        return self._signals

    @property
    def usage(self) -> UsagePolicy:
        return self._usage

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def supervisor(self) -> ListeningSupervisor | None:
        return self._supervisor

    @property
    def listening(self) -> bool:
        if self._supervisor is not None:
            return self._supervisor.listening
        return self._listening

    # --- Extraction ---

    async def ingest_chunk(self, chunk: str) -> ExtractionResult:
        """Apply one finalized chunk: transcript append plus field extraction."""
        async with self._lock:
            self._state, result = self._state.ingest(chunk)
            transcript_length = len(self._state.transcript.text)

        for match in result.matches:
            await self._signals.emit_field_matched(match.label, match.value, match.anchor_index)
        await self._signals.emit_chunk_processed(chunk, result.matched_labels, transcript_length)
        return result

    # --- User edits ---

    async def set_custom_fields(self, entries: list[str]) -> SessionState:
        async with self._lock:
            self._state = self._state.with_custom_fields(entries)
            state = self._state
        await self._signals.emit(
            SignalType.REGISTRY_UPDATED,
            {
                "custom_fields": list(state.custom_fields),
                "labels": state.registry.labels(),
            },
        )
        return state

    async def edit_field(self, label: str, value: str) -> SessionState:
        async with self._lock:
            self._state = self._state.with_field_value(label, value)
            state = self._state
        await self._signals.emit(SignalType.FIELD_EDITED, {"label": label, "value": value})
        return state

    async def edit_transcript(self, text: str) -> SessionState:
        async with self._lock:
            self._state = self._state.with_transcript(text)
            state = self._state
        await self._signals.emit(SignalType.TRANSCRIPT_EDITED, {"transcript_length": len(text)})
        return state

    # --- Listening ---

    def attach_source(
        self, source: SpeechSource, config: ListeningConfig | None = None
    ) -> ListeningSupervisor:
        """Bind an in-process recognizer; its final text feeds ``ingest_chunk``."""
        if self.listening:
            raise ListeningStateError("Cannot replace the speech source while listening")
        self._supervisor = ListeningSupervisor(
            source=source,
            on_chunk=self.ingest_chunk,
            config=config,
            signals=self._signals,
        )
        return self._supervisor

    async def start_listening(self) -> None:
        """Start listening, gated by the usage policy.

        Only starting is gated; stopping never consults the usage limit.
        """
        if self.listening:
            raise ListeningStateError("Already listening")
        self._usage.check_can_start()

        if self._supervisor is not None:
            await self._supervisor.start()
        self._listening = True
        self._usage.record_start()

        logger.info(
            "Listening started",
            extra={
                "event": "listening_started",
                "context": {"session_id": self.session_id, "usage": self._usage.badge()},
            },
        )
        await self._signals.emit_listening_change(
            True, {"usage_count": self._usage.usage_count, "is_pro": self._usage.is_pro}
        )

    async def stop_listening(self) -> None:
        if not self.listening:
            return
        if self._supervisor is not None:
            await self._supervisor.stop()
        self._listening = False
        await self._signals.emit_listening_change(False, {"reason": "user"})
