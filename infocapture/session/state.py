"""The explicit session value threaded through extraction.

A session is replaced, never mutated: every operation returns a new
``SessionState`` computed from the old one.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable

from infocapture.config.settings import ExtractionConfig
from infocapture.extraction.engine import ExtractionResult, extract_fields
from infocapture.extraction.fields import FieldRegistry
from infocapture.extraction.history import MatchHistory
from infocapture.extraction.transcript import TranscriptAccumulator


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class SessionState:
    """Registry, extracted values, match history and transcript of one session."""

    session_id: str
    registry: FieldRegistry
    custom_fields: tuple[str, ...] = ()
    values: dict[str, str] = field(default_factory=dict)
    history: MatchHistory = field(default_factory=MatchHistory)
    transcript: TranscriptAccumulator = field(default_factory=TranscriptAccumulator)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def new(
        cls,
        config: ExtractionConfig | None = None,
        session_id: str | None = None,
    ) -> SessionState:
        config = config or ExtractionConfig()
        slots = ("",) * config.max_custom_fields
        return cls(
            session_id=session_id or new_session_id(),
            registry=FieldRegistry(slots, config=config),
            custom_fields=slots,
            history=MatchHistory(capacity=config.history_capacity),
        )

    def ingest(self, chunk: str) -> tuple[SessionState, ExtractionResult]:
        """Append a finalized chunk to the transcript and run extraction on it."""
        result = extract_fields(chunk, self.registry, self.values, self.history)
        updated = replace(
            self,
            values=result.values,
            history=result.history,
            transcript=self.transcript.append(chunk),
        )
        return updated, result

    def with_custom_fields(self, entries: Iterable[str]) -> SessionState:
        """Replace the custom field slots and rebuild the registry.

        Values captured for fields that are no longer registered are kept.
        """
        max_slots = self.registry.config.max_custom_fields
        slots = tuple(entries)[:max_slots]
        slots = slots + ("",) * (max_slots - len(slots))
        return replace(
            self,
            custom_fields=slots,
            registry=self.registry.with_custom_fields(slots),
        )

    def with_field_value(self, label: str, value: str) -> SessionState:
        """Direct user edit of a field value; not checked against the registry."""
        return replace(self, values={**self.values, label: value})

    def with_transcript(self, text: str) -> SessionState:
        """Direct user edit of the transcript; extraction is not re-run."""
        return replace(self, transcript=self.transcript.replace_text(text))
