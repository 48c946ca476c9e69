"""
Ports (interfaces) for progress storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from .models import PracticeAttempt, ProgressEntry

EntryUpdate = Callable[[ProgressEntry | None], ProgressEntry]


class ProgressRepository(ABC):
    """
    Port for the authoritative item key -> ProgressEntry mapping.

    Implementations:
        - InMemoryProgressRepository: Process-local dict, for tests and ephemeral use.
        - JsonFileProgressRepository: Whole map in one JSON document.
        - SqliteProgressRepository: One row per entry in a SQLite database.

    Every backend error must surface as StorageFailure.
    """

    @abstractmethod
    def get(self, item_key: str) -> ProgressEntry | None:
        """Return the entry for item_key, or None if the item was never seen."""
        pass

    @abstractmethod
    def upsert(self, entry: ProgressEntry) -> None:
        """
        Insert or replace the entry for entry.item_key.

        Callers must produce entries through IntervalCalculator or
        ProgressEntry.new, never by editing fields directly.
        """
        pass

    @abstractmethod
    def enumerate(self) -> list[ProgressEntry]:
        """Return every stored entry. Order is not significant."""
        pass

    @abstractmethod
    def update(self, item_key: str, compute: EntryUpdate) -> ProgressEntry:
        """
        Atomically read, recompute and write back one entry.

        Args:
            item_key: The item to update.
            compute: Receives the current entry (None if absent) and returns
                the entry to store. Returning the current entry unchanged
                skips the write.

        Returns:
            The entry that is stored after the call.
        """
        pass

    def initialize(self, item_key: str, now: datetime) -> ProgressEntry:
        """
        Ensure an entry exists for item_key.

        Returns the existing entry untouched, otherwise stores and returns
        a fresh default entry.
        """
        return self.update(item_key, lambda current: current or ProgressEntry.new(item_key, now))

    def close(self) -> None:
        """Release backend resources. Backends without any keep the default."""


class PracticeLog(ABC):
    """
    Port for the append-only history of practice attempts.

    Implementations:
        - InMemoryPracticeLog: Process-local list.
        - JsonFilePracticeLog: All attempts in one JSON array document.
        - SqlitePracticeLog: One row per attempt in a SQLite database.

    Every backend error must surface as StorageFailure.
    """

    @abstractmethod
    def append(self, attempt: PracticeAttempt) -> None:
        pass

    @abstractmethod
    def history(self, item_key: str | None = None) -> list[PracticeAttempt]:
        """Return attempts in the order they were appended, optionally for one item."""
        pass

    def close(self) -> None:
        """Release backend resources. Backends without any keep the default."""
