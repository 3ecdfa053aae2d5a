"""Listening supervisor — keeps the recognizer alive while listening is on.

Browser-style recognizers end on their own after silence. The supervisor
restarts the source whenever it ends while the user still wants to listen,
with capped exponential backoff and a restart ceiling. The rest of the
system only sees "listening: on/off" and a stream of finalized chunks.

MUST NOT:
- Deliver interim results
- Deliver a chunk before the previous chunk handler has returned
- Restart after the user stopped listening
- Retry indefinitely without a ceiling
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

from infocapture.config.settings import ListeningConfig
from infocapture.signals.emitter import SignalEmitter
from infocapture.signals.types import SignalType
from infocapture.speech.source import SpeechSource, final_text
from infocapture.speech.states import ACTIVE_STATES, VALID_TRANSITIONS, ListeningState
from infocapture.telemetry.errors import ErrorCode, InfoCaptureError, emit_structured_error

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[str], Awaitable[Any]]


class ListeningStateError(InfoCaptureError):
    """Raised on a listening transition the state machine does not allow."""


class ListeningSupervisor:
    """Supervised recognition loop for one session."""

    def __init__(
        self,
        source: SpeechSource,
        on_chunk: ChunkHandler,
        config: ListeningConfig | None = None,
        signals: SignalEmitter | None = None,
    ) -> None:
        self._source = source
        self._on_chunk = on_chunk
        self._config = config or ListeningConfig()
        self._signals = signals
        self._state = ListeningState.IDLE
        self._restarts = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ListeningState:
        return self._state

    @property
    def listening(self) -> bool:
        return self._state in ACTIVE_STATES

    @property
    def restarts(self) -> int:
        return self._restarts

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    @property
    def _session_id(self) -> str | None:
        return self._signals.session_id if self._signals is not None else None

    def _transition(self, to_state: ListeningState) -> None:
        if to_state not in VALID_TRANSITIONS.get(self._state, set()):
            raise ListeningStateError(
                f"Invalid transition: {self._state.value} -> {to_state.value}"
            )
        logger.debug(
            "Listening state change",
            extra={
                "event": "listening_transition",
                "context": {"from": self._state.value, "to": to_state.value},
            },
        )
        self._state = to_state

    async def _emit(self, signal_type: SignalType, payload: dict[str, Any]) -> None:
        if self._signals is not None:
            await self._signals.emit(signal_type, payload)

    async def _backoff(self, attempt: int) -> None:
        """Exponential backoff with jitter."""
        base = self._config.restart_backoff_ms / 1000.0
        max_delay = self._config.restart_backoff_max_ms / 1000.0
        delay = min(base * (2 ** (attempt - 1)), max_delay)
        if delay > 0:
            delay += random.uniform(0, base)
        await asyncio.sleep(delay)

    # --- Public control ---

    async def start(self) -> None:
        """Start the recognizer and the supervision loop."""
        if self.listening:
            raise ListeningStateError("Already listening")
        await self._source.start()
        self._transition(ListeningState.LISTENING)
        self._restarts = 0
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop listening. No-op when not listening."""
        if not self.listening:
            return
        self._transition(ListeningState.STOPPED)
        await self._source.stop()

        task = self._task
        self._task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    # --- Supervision loop ---

    async def _run(self) -> None:
        while self._state is ListeningState.LISTENING:
            ended_normally = await self._pump()
            if not ended_normally or self._state is not ListeningState.LISTENING:
                return

            if not self._config.restart_on_end:
                self._transition(ListeningState.STOPPED)
                await self._emit(SignalType.LISTENING_STOPPED, {"reason": "source_ended"})
                return

            if self._restarts >= self._config.max_restarts:
                emit_structured_error(
                    logger,
                    code=ErrorCode.SPEECH_SOURCE_RESTART_EXHAUSTED,
                    message=f"Recognizer ended {self._restarts} times without recovering",
                    suppressed=True,
                    session_id=self._session_id,
                )
                self._transition(ListeningState.FAILED)
                await self._emit(SignalType.LISTENING_STOPPED, {"reason": "restarts_exhausted"})
                return

            self._restarts += 1
            self._transition(ListeningState.RESTARTING)
            await self._emit(
                SignalType.SOURCE_RESTARTED,
                {"attempt_number": self._restarts, "max_attempts": self._config.max_restarts},
            )
            await self._backoff(self._restarts)
            if self._state is not ListeningState.RESTARTING:
                return

            try:
                await self._source.start()
            except Exception as exc:
                await self._fail(exc)
                return
            self._transition(ListeningState.LISTENING)

    async def _pump(self) -> bool:
        """Forward finalized text until the source ends.

        Returns False if the source or the chunk handler raised.
        """
        events = self._source.events().__aiter__()
        while True:
            try:
                event = await events.__anext__()
            except StopAsyncIteration:
                return True
            except Exception as exc:
                await self._fail(exc)
                return False

            if self._state is not ListeningState.LISTENING:
                return True

            text = final_text(event)
            if text:
                try:
                    await self._on_chunk(text)
                except Exception as exc:
                    await self._fail(exc)
                    return False
                self._restarts = 0

    async def _fail(self, exc: Exception) -> None:
        emit_structured_error(
            logger,
            code=ErrorCode.SPEECH_SOURCE_FAILED,
            message=str(exc),
            suppressed=True,
            session_id=self._session_id,
            details={"state": self._state.value},
        )
        if self._state in ACTIVE_STATES:
            self._transition(ListeningState.FAILED)
        await self._emit(SignalType.SOURCE_ERROR, {"error": str(exc)})
        await self._emit(SignalType.LISTENING_STOPPED, {"reason": "source_error"})
