"""Extraction engine — maps one finalized chunk onto field values.

Deterministic and side-effect free. For each field, in registry order:

1. Presence: the full normalized label must occur in the lower-cased chunk
   (plain substring test, not word-boundary aware).
2. Anchor: the first token whose lower-cased form contains the label's
   first word. Only the first word is used, so a multi-word label such as
   "first name" anchors on "first" and captures "name ..." as its value.
3. Capture: up to ``capture_window`` tokens after the anchor. A field whose
   anchor is missing or is the last token is left untouched even though the
   presence test passed.

Matched fields overwrite any previous value and are prepended to the match
history. Inputs are never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from infocapture.extraction.fields import FieldRegistry, FieldSpec
from infocapture.extraction.history import MatchHistory

logger = logging.getLogger(__name__)

CAPTURE_WINDOW = 2


@dataclass(frozen=True)
class FieldMatch:
    """One field triggered by a chunk."""

    label: str
    value: str
    anchor_index: int


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of processing a single chunk."""

    values: dict[str, str]
    history: MatchHistory
    matches: tuple[FieldMatch, ...] = field(default_factory=tuple)

    @property
    def matched_labels(self) -> list[str]:
        return [match.label for match in self.matches]


def _find_anchor(tokens: list[str], trigger_word: str) -> int | None:
    for index, token in enumerate(tokens):
        if trigger_word in token.lower():
            return index
    return None


def match_field(
    spec: FieldSpec,
    chunk_lower: str,
    tokens: list[str],
    capture_window: int = CAPTURE_WINDOW,
) -> FieldMatch | None:
    """Apply the capture rule for a single field, or return None."""
    if spec.normalized not in chunk_lower:
        return None

    anchor = _find_anchor(tokens, spec.trigger_word)
    if anchor is None or anchor >= len(tokens) - 1:
        return None

    value = " ".join(tokens[anchor + 1 : anchor + 1 + capture_window])
    return FieldMatch(label=spec.label, value=value, anchor_index=anchor)


def extract_fields(
    chunk: str,
    registry: FieldRegistry,
    current_values: Mapping[str, str] | None = None,
    current_history: MatchHistory | None = None,
) -> ExtractionResult:
    """Run the capture rule for every registered field against ``chunk``."""
    capture_window = registry.config.capture_window
    values = dict(current_values or {})
    history = current_history
    if history is None:
        history = MatchHistory(capacity=registry.config.history_capacity)

    chunk_lower = chunk.lower()
    tokens = chunk.split()

    matches: list[FieldMatch] = []
    for spec in registry.fields():
        match = match_field(spec, chunk_lower, tokens, capture_window)
        if match is None:
            continue
        values[match.label] = match.value
        history = history.prepend(match.label)
        matches.append(match)

    if matches:
        logger.debug(
            "Chunk triggered fields",
            extra={"event": "fields_matched", "context": {"labels": [m.label for m in matches]}},
        )

    return ExtractionResult(values=values, history=history, matches=tuple(matches))


def process(
    chunk: str,
    registry: FieldRegistry,
    current_values: Mapping[str, str] | None = None,
    current_history: MatchHistory | None = None,
) -> tuple[dict[str, str], MatchHistory]:
    """Return the updated values and history after processing ``chunk``."""
    result = extract_fields(chunk, registry, current_values, current_history)
    return result.values, result.history
