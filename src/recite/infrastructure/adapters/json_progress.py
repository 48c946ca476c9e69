"""
JSON File Progress Repository: Infrastructure adapter for single JSON documents.

Implements ProgressRepository by keeping the whole map in one file, and
PracticeLog by keeping every attempt in one array. Writes go to a temporary
sibling first and are moved into place, so a crash never leaves a
half-written document behind.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path

from recite.domain.errors import StorageFailure
from recite.domain.progress.models import PracticeAttempt, ProgressEntry
from recite.domain.progress.ports import EntryUpdate, PracticeLog, ProgressRepository
from recite.infrastructure.serialization import (
    dump_practice_log,
    dump_progress_map,
    load_practice_log,
    load_progress_map,
)

logger = logging.getLogger(__name__)


class JsonFileProgressRepository(ProgressRepository):
    """
    Stores progress in a JSON file.

    Locking is per instance; share one repository per file within a process.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def get(self, item_key: str) -> ProgressEntry | None:
        with self._lock:
            return self._load().get(item_key)

    def upsert(self, entry: ProgressEntry) -> None:
        with self._lock:
            entries = self._load()
            entries[entry.item_key] = entry
            self._save(entries)

    def enumerate(self) -> list[ProgressEntry]:
        with self._lock:
            return list(self._load().values())

    def update(self, item_key: str, compute: EntryUpdate) -> ProgressEntry:
        with self._lock:
            entries = self._load()
            current = entries.get(item_key)
            entry = compute(current)
            if entry is not current:
                entries[item_key] = entry
                self._save(entries)
            return entry

    def _load(self) -> dict[str, ProgressEntry]:
        data = _read_document(self.path)
        if data is None:
            return {}
        return load_progress_map(data)

    def _save(self, entries: dict[str, ProgressEntry]) -> None:
        _write_document(self.path, dump_progress_map(entries.values(), indent=2))


class JsonFilePracticeLog(PracticeLog):
    """
    Stores practice attempts as a JSON array.

    Each append rewrites the whole document; locking is per instance.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def append(self, attempt: PracticeAttempt) -> None:
        with self._lock:
            attempts = self._load()
            attempts.append(attempt)
            _write_document(self.path, dump_practice_log(attempts, indent=2))

    def history(self, item_key: str | None = None) -> list[PracticeAttempt]:
        with self._lock:
            attempts = self._load()
        if item_key is None:
            return attempts
        return [a for a in attempts if a.item_key == item_key]

    def _load(self) -> list[PracticeAttempt]:
        data = _read_document(self.path)
        if data is None:
            return []
        return load_practice_log(data)


def _read_document(path: Path) -> bytes | None:
    """Raw document bytes, or None when the file is missing or blank."""
    if not path.exists():
        return None
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"Could not read {path}: {e}")
        raise StorageFailure(f"Could not read {path}: {e}") from e

    if not data.strip():
        return None
    return data


def _write_document(path: Path, payload: str) -> None:
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        logger.error(f"Could not write {path}: {e}")
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StorageFailure(f"Could not write {path}: {e}") from e
