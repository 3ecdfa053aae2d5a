"""Service layer for live capture sessions, usage tracking and saving."""

from __future__ import annotations

import logging

from infocapture.config.settings import InfoCaptureConfig
from infocapture.session.capture import CaptureSession
from infocapture.session.repository import SavedSession, SessionRepository
from infocapture.session.state import SessionState
from infocapture.session.usage import UsagePolicy
from infocapture.signals.emitter import SignalEmitter
from infocapture.signals.types import Signal, SignalType
from infocapture.telemetry.errors import InfoCaptureError

logger = logging.getLogger(__name__)

ANONYMOUS_PRINCIPAL = "anonymous"


class SessionNotFoundError(InfoCaptureError):
    """Raised when a session id is unknown."""


class CaptureService:
    """Owns live sessions, per-principal usage and the saved-session repository."""

    def __init__(
        self,
        config: InfoCaptureConfig | None = None,
        repository: SessionRepository | None = None,
    ) -> None:
        self._config = config or InfoCaptureConfig()
        self._repository = repository or SessionRepository(
            data_dir=self._config.store.data_dir,
            max_saved_sessions=self._config.store.max_saved_sessions,
        )
        self._sessions: dict[str, CaptureSession] = {}
        self._owners: dict[str, str] = {}
        self._usage: dict[str, UsagePolicy] = {}

    @property
    def config(self) -> InfoCaptureConfig:
        return self._config

    @property
    def repository(self) -> SessionRepository:
        return self._repository

    @property
    def sessions(self) -> dict[str, CaptureSession]:
        return dict(self._sessions)

    def usage_for(self, principal: str) -> UsagePolicy:
        key = principal or ANONYMOUS_PRINCIPAL
        if key not in self._usage:
            self._usage[key] = UsagePolicy(self._config.usage)
        return self._usage[key]

    def create_session(self, owner: str = "", custom_fields: list[str] | None = None) -> CaptureSession:
        state = SessionState.new(self._config.extraction)
        if custom_fields:
            state = state.with_custom_fields(custom_fields)

        signals = SignalEmitter(
            session_id=state.session_id,
            ledger_path=self._repository.session_dir(state.session_id) / "signals.jsonl",
        )
        session = CaptureSession(
            state=state,
            usage=self.usage_for(owner),
            signals=signals,
            owner=owner,
        )
        self._sessions[state.session_id] = session
        self._owners[state.session_id] = owner
        logger.info(
            "Created capture session",
            extra={"event": "session_created", "context": {"session_id": state.session_id}},
        )
        return session

    def owner_of(self, session_id: str) -> str | None:
        """Owner of a live, closed or saved session; None if the session is unknown."""
        session = self._sessions.get(session_id)
        if session is not None:
            return session.owner
        if session_id in self._owners:
            return self._owners[session_id]
        snapshot = self._repository.load(session_id)
        return snapshot.owner if snapshot is not None else None

    def get_session(self, session_id: str) -> CaptureSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def close_session(self, session_id: str) -> None:
        session = self.get_session(session_id)
        await session.stop_listening()
        self._sessions.pop(session_id, None)
        self._repository.prune_unsaved(active=self._sessions)

    async def save_session(self, session_id: str) -> SavedSession:
        session = self.get_session(session_id)
        snapshot = self._repository.save(session.state, owner=session.owner)
        await session.signals.emit(
            SignalType.SESSION_SAVED,
            {"saved_at": snapshot.saved_at.isoformat(), "fields": len(snapshot.values)},
        )
        return snapshot

    def get_signals(self, session_id: str) -> list[Signal]:
        """Signals of a live session, or of a closed one from its ledger."""
        session = self._sessions.get(session_id)
        if session is not None:
            return session.signals.signals
        ledger_path = self._repository.session_dir(session_id) / "signals.jsonl"
        if ledger_path.exists():
            return SignalEmitter.load_ledger(ledger_path)
        raise SessionNotFoundError(f"Signals for session {session_id} not found")
