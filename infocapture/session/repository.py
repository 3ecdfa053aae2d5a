"""Saved session repository with disk-backed snapshots and retention."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from infocapture.session.state import SessionState
from infocapture.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"


class SavedSession(BaseModel):
    """Persistent snapshot of a capture session."""

    session_id: str
    owner: str = ""
    transcript: str = ""
    values: dict[str, str] = Field(default_factory=dict)
    recent_matches: list[str] = Field(default_factory=list)
    custom_fields: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_state(cls, state: SessionState, owner: str = "") -> SavedSession:
        return cls(
            session_id=state.session_id,
            owner=owner,
            transcript=state.transcript.text,
            values=dict(state.values),
            recent_matches=list(state.history.entries),
            custom_fields=list(state.custom_fields),
            created_at=state.created_at,
        )


class SessionRepository:
    """Repository for saved sessions, one directory per session."""

    def __init__(self, data_dir: Path, max_saved_sessions: int | None = None) -> None:
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._max_saved_sessions = max_saved_sessions
        self._saved: dict[str, SavedSession] = {}

        self.hydrate_from_disk()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def session_dir(self, session_id: str) -> Path:
        return self._data_dir / session_id

    def save(self, state: SessionState, owner: str = "") -> SavedSession:
        """Write the session snapshot atomically and apply retention."""
        snapshot = SavedSession.from_state(state, owner=owner)
        session_dir = self.session_dir(snapshot.session_id)
        session_dir.mkdir(parents=True, exist_ok=True)

        target = session_dir / SESSION_FILENAME
        temp_path = target.with_suffix(".tmp")
        try:
            temp_path.write_text(snapshot.model_dump_json(indent=2))
            temp_path.replace(target)
        except OSError as exc:
            if temp_path.exists():
                temp_path.unlink()
            emit_structured_error(
                logger,
                code=ErrorCode.SESSION_PERSIST_FAILED,
                message=str(exc),
                suppressed=False,
                session_id=snapshot.session_id,
            )
            raise

        self._saved[snapshot.session_id] = snapshot
        logger.info(
            "Saved session",
            extra={
                "event": "session_saved",
                "context": {
                    "session_id": snapshot.session_id,
                    "fields": len(snapshot.values),
                    "transcript_length": len(snapshot.transcript),
                },
            },
        )
        self._evict()
        return snapshot

    def load(self, session_id: str) -> SavedSession | None:
        return self._saved.get(session_id)

    def list_saved(self) -> list[SavedSession]:
        return sorted(self._saved.values(), key=lambda s: s.saved_at, reverse=True)

    def hydrate_from_disk(self) -> None:
        self._saved.clear()
        if not self._data_dir.exists():
            return

        for session_dir in self._data_dir.iterdir():
            if not session_dir.is_dir():
                continue
            snapshot_path = session_dir / SESSION_FILENAME
            if not snapshot_path.exists():
                continue
            snapshot = SavedSession.model_validate_json(snapshot_path.read_text())
            self._saved[snapshot.session_id] = snapshot

        self._evict()

    def _evict(self) -> None:
        if self._max_saved_sessions is None or self._max_saved_sessions < 0:
            return
        for snapshot in self.list_saved()[self._max_saved_sessions :]:
            self._delete(snapshot.session_id)

    def prune_unsaved(self, active: Iterable[str] = ()) -> None:
        """Drop never-saved session directories (signal ledgers) past the retention limit.

        Directories of sessions in ``active`` are kept regardless of age.
        """
        if self._max_saved_sessions is None or not self._data_dir.exists():
            return
        keep = set(active)
        unsaved = [
            path
            for path in self._data_dir.iterdir()
            if path.is_dir() and path.name not in self._saved and path.name not in keep
        ]
        unsaved.sort(key=lambda path: path.stat().st_mtime, reverse=True)
        for path in unsaved[self._max_saved_sessions :]:
            shutil.rmtree(path)

    def _delete(self, session_id: str) -> None:
        self._saved.pop(session_id, None)
        session_dir = self.session_dir(session_id)
        if session_dir.exists():
            shutil.rmtree(session_dir)
