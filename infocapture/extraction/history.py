"""Bounded most-recent-first log of triggered fields."""

from __future__ import annotations

from collections import deque
from itertools import islice
from typing import Iterable, Iterator

HISTORY_CAPACITY = 5


class MatchHistory:
    """Fixed-capacity match log. Head is the most recent match.

    Instances are never mutated; :meth:`prepend` returns a new history and
    drops the oldest entry once capacity is exceeded.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[str] = (), capacity: int = HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._entries: deque[str] = deque(islice(entries, capacity), maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or HISTORY_CAPACITY

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    @property
    def head(self) -> str | None:
        return self._entries[0] if self._entries else None

    def prepend(self, label: str) -> MatchHistory:
        updated = MatchHistory(self._entries, capacity=self.capacity)
        updated._entries.appendleft(label)
        return updated

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MatchHistory):
            return NotImplemented
        return self.entries == other.entries and self.capacity == other.capacity

    def __repr__(self) -> str:
        return f"MatchHistory({list(self._entries)!r}, capacity={self.capacity})"
