"""Speech source contract — the recognizer that feeds finalized text.

The recognizer itself lives outside this package. It reports batches of
results, each either interim (still being revised) or final. Only final
text ever reaches the extraction engine.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from pydantic import BaseModel, Field


class RecognitionResult(BaseModel):
    """One recognizer hypothesis."""

    transcript: str
    is_final: bool = False

    model_config = {"frozen": True}


class RecognitionEvent(BaseModel):
    """A batch of results reported by the recognizer.

    ``result_index`` is the first result that changed since the previous
    event; earlier entries were already reported.
    """

    results: list[RecognitionResult] = Field(default_factory=list)
    result_index: int = Field(default=0, ge=0)


class SpeechSource(Protocol):
    """Continuous recognizer.

    ``events()`` yields recognition events until the recognizer stops on its
    own (silence timeout, network hiccup) or is stopped. Errors surface as
    exceptions raised from the iterator.
    """

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def events(self) -> AsyncIterator[RecognitionEvent]: ...


def final_text(event: RecognitionEvent) -> str:
    """Concatenate the final results of an event, dropping interim ones."""
    return "".join(
        result.transcript
        for result in event.results[event.result_index :]
        if result.is_final
    )
