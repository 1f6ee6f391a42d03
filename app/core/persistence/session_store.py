"""
Purpose: Operation history for the current session (in-memory only).
Why: Show the user what they did and how each request ended.

What is inside:
HistoryRecorder with record/entries/reset. Newest entry first, oldest evicted
once the limit (default 10) is exceeded.

Testing:
In-memory: simple state tests.
"""

from core.models import HistoryEntry

HISTORY_LIMIT = 10


class HistoryRecorder:
    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1.")
        self.limit = limit
        self._entries: list[HistoryEntry] = []

    def record(self, entry: HistoryEntry) -> None:
        self._entries = [entry, *self._entries][: self.limit]

    def entries(self) -> list[HistoryEntry]:
        return self._entries[:]

    def reset(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)
