"""
SQLite Progress Repository: Infrastructure adapter for a SQLite database.

Implements ProgressRepository with one row per item and PracticeLog with one
row per attempt. Read-modify-write runs inside BEGIN IMMEDIATE so concurrent
writers cannot lose each other's updates.
"""

import logging
import sqlite3
import threading
from pathlib import Path

from recite.domain.constants import SQLITE_TIMEOUT
from recite.domain.errors import StorageFailure
from recite.domain.progress.models import PracticeAttempt, ProgressEntry
from recite.domain.progress.ports import EntryUpdate, PracticeLog, ProgressRepository
from recite.infrastructure.serialization import dump_mistakes, load_mistakes, parse_timestamp

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS progress (
    item_key TEXT PRIMARY KEY,
    strength REAL NOT NULL DEFAULT 0,
    last_reviewed TEXT NOT NULL,
    next_review TEXT NOT NULL,
    total_reviews INTEGER NOT NULL DEFAULT 0,
    consecutive_correct INTEGER NOT NULL DEFAULT 0,
    efactor REAL NOT NULL DEFAULT 2.5,
    interval_days INTEGER NOT NULL DEFAULT 0,
    mistakes TEXT NOT NULL DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_progress_next_review ON progress(next_review);
"""

UPSERT_SQL = """
INSERT INTO progress (
    item_key, strength, last_reviewed, next_review, total_reviews,
    consecutive_correct, efactor, interval_days, mistakes
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(item_key) DO UPDATE SET
    strength = excluded.strength,
    last_reviewed = excluded.last_reviewed,
    next_review = excluded.next_review,
    total_reviews = excluded.total_reviews,
    consecutive_correct = excluded.consecutive_correct,
    efactor = excluded.efactor,
    interval_days = excluded.interval_days,
    mistakes = excluded.mistakes
"""


PRACTICE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS practice_attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_key TEXT NOT NULL,
    practiced_at TEXT NOT NULL,
    accuracy INTEGER NOT NULL,
    total_words INTEGER NOT NULL DEFAULT 0,
    correct_words INTEGER NOT NULL DEFAULT 0,
    duration_seconds REAL NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_practice_item_key ON practice_attempts(item_key);
"""

INSERT_ATTEMPT_SQL = """
INSERT INTO practice_attempts (
    item_key, practiced_at, accuracy, total_words, correct_words, duration_seconds
)
VALUES (?, ?, ?, ?, ?, ?)
"""


class SqliteProgressRepository(ProgressRepository):
    """
    Stores progress entries in a SQLite database.

    Use as a context manager or call close() when done.
    """

    def __init__(self, db_path: Path, timeout: float = SQLITE_TIMEOUT):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self.conn = _connect(db_path, timeout, SCHEMA_SQL)

    def __enter__(self) -> "SqliteProgressRepository":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    def get(self, item_key: str) -> ProgressEntry | None:
        with self._lock:
            try:
                return self._select(item_key)
            except sqlite3.Error as e:
                raise StorageFailure(f"Failed to read {item_key}: {e}") from e

    def upsert(self, entry: ProgressEntry) -> None:
        with self._lock:
            try:
                self.conn.execute(UPSERT_SQL, _to_row(entry))
            except sqlite3.Error as e:
                logger.error(f"Failed to write {entry.item_key}: {e}")
                raise StorageFailure(f"Failed to write {entry.item_key}: {e}") from e

    def enumerate(self) -> list[ProgressEntry]:
        with self._lock:
            try:
                rows = self.conn.execute("SELECT * FROM progress").fetchall()
            except sqlite3.Error as e:
                raise StorageFailure(f"Failed to list progress: {e}") from e
        return [_from_row(row) for row in rows]

    def update(self, item_key: str, compute: EntryUpdate) -> ProgressEntry:
        with self._lock:
            try:
                self.conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageFailure(f"Failed to lock {item_key}: {e}") from e

            try:
                current = self._select(item_key)
                entry = compute(current)
                if entry is not current:
                    self.conn.execute(UPSERT_SQL, _to_row(entry))
                self.conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                logger.error(f"Failed to update {item_key}: {e}")
                raise StorageFailure(f"Failed to update {item_key}: {e}") from e
            except BaseException:
                self._rollback()
                raise
            return entry

    def _rollback(self) -> None:
        # The caller re-raises the error that triggered the rollback
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning(f"Rollback failed on {self.db_path}: {e}")

    def _select(self, item_key: str) -> ProgressEntry | None:
        row = self.conn.execute(
            "SELECT * FROM progress WHERE item_key = ?", (item_key,)
        ).fetchone()
        if row:
            return _from_row(row)
        return None


class SqlitePracticeLog(PracticeLog):
    """
    Stores practice attempts in a SQLite database, one row each.

    May point at the same file as SqliteProgressRepository.
    """

    def __init__(self, db_path: Path, timeout: float = SQLITE_TIMEOUT):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self.conn = _connect(db_path, timeout, PRACTICE_SCHEMA_SQL)

    def __enter__(self) -> "SqlitePracticeLog":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    def append(self, attempt: PracticeAttempt) -> None:
        with self._lock:
            try:
                self.conn.execute(
                    INSERT_ATTEMPT_SQL,
                    (
                        attempt.item_key,
                        attempt.practiced_at.isoformat(timespec="microseconds"),
                        attempt.accuracy,
                        attempt.total_words,
                        attempt.correct_words,
                        attempt.duration_seconds,
                    ),
                )
            except sqlite3.Error as e:
                logger.error(f"Failed to log practice for {attempt.item_key}: {e}")
                raise StorageFailure(f"Failed to log practice for {attempt.item_key}: {e}") from e

    def history(self, item_key: str | None = None) -> list[PracticeAttempt]:
        with self._lock:
            try:
                if item_key is None:
                    rows = self.conn.execute(
                        "SELECT * FROM practice_attempts ORDER BY id"
                    ).fetchall()
                else:
                    rows = self.conn.execute(
                        "SELECT * FROM practice_attempts WHERE item_key = ? ORDER BY id",
                        (item_key,),
                    ).fetchall()
            except sqlite3.Error as e:
                raise StorageFailure(f"Failed to read practice history: {e}") from e
        return [
            PracticeAttempt(
                item_key=row["item_key"],
                practiced_at=parse_timestamp(row["practiced_at"], "practiced_at"),
                accuracy=row["accuracy"],
                total_words=row["total_words"],
                correct_words=row["correct_words"],
                duration_seconds=row["duration_seconds"],
            )
            for row in rows
        ]


def _connect(db_path: Path, timeout: float, schema: str) -> sqlite3.Connection:
    try:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transactions are opened explicitly
        conn = sqlite3.connect(
            str(db_path), timeout=timeout, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        conn.executescript(schema)
    except (OSError, sqlite3.Error) as e:
        logger.error(f"Could not open database {db_path}: {e}")
        raise StorageFailure(f"Could not open {db_path}: {e}") from e
    return conn


def _to_row(entry: ProgressEntry) -> tuple:
    return (
        entry.item_key,
        entry.strength,
        entry.last_reviewed.isoformat(timespec="microseconds"),
        entry.next_review.isoformat(timespec="microseconds"),
        entry.total_reviews,
        entry.consecutive_correct,
        entry.efactor,
        entry.interval,
        dump_mistakes(entry.mistakes),
    )


def _from_row(row: sqlite3.Row) -> ProgressEntry:
    key = row["item_key"]
    return ProgressEntry(
        item_key=key,
        strength=row["strength"],
        last_reviewed=parse_timestamp(row["last_reviewed"], f"{key}.last_reviewed"),
        next_review=parse_timestamp(row["next_review"], f"{key}.next_review"),
        total_reviews=row["total_reviews"],
        consecutive_correct=row["consecutive_correct"],
        efactor=row["efactor"],
        interval=row["interval_days"],
        mistakes=load_mistakes(row["mistakes"]),
    )
