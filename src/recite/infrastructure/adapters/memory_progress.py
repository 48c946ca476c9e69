"""
In-memory progress repository and practice log.

Nothing survives the process; used for tests and throwaway sessions.
"""

import threading

from recite.domain.progress.models import PracticeAttempt, ProgressEntry
from recite.domain.progress.ports import EntryUpdate, PracticeLog, ProgressRepository


class InMemoryProgressRepository(ProgressRepository):
    def __init__(self, entries: list[ProgressEntry] | None = None):
        self._entries: dict[str, ProgressEntry] = {e.item_key: e for e in entries or []}
        self._lock = threading.RLock()

    def get(self, item_key: str) -> ProgressEntry | None:
        with self._lock:
            return self._entries.get(item_key)

    def upsert(self, entry: ProgressEntry) -> None:
        with self._lock:
            self._entries[entry.item_key] = entry

    def enumerate(self) -> list[ProgressEntry]:
        with self._lock:
            return list(self._entries.values())

    def update(self, item_key: str, compute: EntryUpdate) -> ProgressEntry:
        with self._lock:
            current = self._entries.get(item_key)
            entry = compute(current)
            if entry is not current:
                self._entries[item_key] = entry
            return entry


class InMemoryPracticeLog(PracticeLog):
    def __init__(self, attempts: list[PracticeAttempt] | None = None):
        self._attempts: list[PracticeAttempt] = list(attempts or [])
        self._lock = threading.RLock()

    def append(self, attempt: PracticeAttempt) -> None:
        with self._lock:
            self._attempts.append(attempt)

    def history(self, item_key: str | None = None) -> list[PracticeAttempt]:
        with self._lock:
            if item_key is None:
                return list(self._attempts)
            return [a for a in self._attempts if a.item_key == item_key]
