"""Running transcript of finalized chunks."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class TranscriptAccumulator:
    """Append-only transcript. Each chunk is followed by a single space.

    Manual edits replace the text outright and never feed back into
    extraction.
    """

    text: str = ""

    def append(self, chunk: str) -> TranscriptAccumulator:
        return replace(self, text=self.text + chunk + " ")

    def replace_text(self, text: str) -> TranscriptAccumulator:
        return replace(self, text=text)
