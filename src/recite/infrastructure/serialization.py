"""
Serialization contract for persisted progress and practice history.

The progress document is a JSON object mapping item key -> ProgressEntry
fields; the practice document is a JSON array of PracticeAttempt fields.
Datetimes are ISO-8601 with microseconds and a UTC offset, floats use their
shortest round-trip representation, so a dump/load cycle is lossless.
Timestamps without an offset are rejected: every comparison the scheduler
makes is against an aware clock.
"""

from collections.abc import Iterable
from datetime import datetime

from pydantic import TypeAdapter, ValidationError

from recite.domain.errors import StorageFailure
from recite.domain.progress.models import MistakeRecord, PracticeAttempt, ProgressEntry

_progress_map = TypeAdapter(dict[str, ProgressEntry])
_entry = TypeAdapter(ProgressEntry)
_mistakes = TypeAdapter(tuple[MistakeRecord, ...])
_practice_log = TypeAdapter(list[PracticeAttempt])


def require_aware(moment: datetime, label: str) -> datetime:
    """Return moment unchanged, or raise StorageFailure if it has no UTC offset."""
    if moment.tzinfo is None or moment.utcoffset() is None:
        raise StorageFailure(f"Timestamp {label} has no UTC offset: {moment.isoformat()}")
    return moment


def parse_timestamp(text: str, label: str) -> datetime:
    """Parse a stored ISO-8601 timestamp, which must carry a UTC offset."""
    try:
        moment = datetime.fromisoformat(text)
    except (TypeError, ValueError) as e:
        raise StorageFailure(f"Timestamp {label} is not ISO-8601: {text!r}") from e
    return require_aware(moment, label)


def _check_entry(entry: ProgressEntry) -> ProgressEntry:
    require_aware(entry.last_reviewed, f"{entry.item_key}.last_reviewed")
    require_aware(entry.next_review, f"{entry.item_key}.next_review")
    _check_mistakes(entry.mistakes)
    return entry


def _check_mistakes(mistakes: tuple[MistakeRecord, ...]) -> tuple[MistakeRecord, ...]:
    for mistake in mistakes:
        require_aware(mistake.recorded_at, "mistakes.recorded_at")
    return mistakes


# ---------- Progress map ----------


def dump_progress_map(entries: Iterable[ProgressEntry], indent: int | None = None) -> str:
    mapping = {entry.item_key: entry for entry in entries}
    return _progress_map.dump_json(mapping, indent=indent).decode("utf-8")


def entry_to_jsonable(entry: ProgressEntry) -> dict:
    return _entry.dump_python(entry, mode="json")


def load_progress_map(data: str | bytes) -> dict[str, ProgressEntry]:
    """
    Parse a progress document.

    Raises:
        StorageFailure: If the document is malformed, a timestamp has no
            UTC offset, or a key does not match the item_key stored under it.
    """
    try:
        mapping = _progress_map.validate_json(data)
    except ValidationError as e:
        raise StorageFailure(f"Corrupt progress document: {e}") from e

    for key, entry in mapping.items():
        if key != entry.item_key:
            raise StorageFailure(f"Progress key {key!r} holds entry for {entry.item_key!r}")
        _check_entry(entry)
    return mapping


# ---------- Mistake log ----------


def dump_mistakes(mistakes: tuple[MistakeRecord, ...]) -> str:
    return _mistakes.dump_json(mistakes).decode("utf-8")


def load_mistakes(data: str | bytes) -> tuple[MistakeRecord, ...]:
    try:
        mistakes = _mistakes.validate_json(data)
    except ValidationError as e:
        raise StorageFailure(f"Corrupt mistake log: {e}") from e
    return _check_mistakes(mistakes)


# ---------- Practice history ----------


def dump_practice_log(attempts: Iterable[PracticeAttempt], indent: int | None = None) -> str:
    return _practice_log.dump_json(list(attempts), indent=indent).decode("utf-8")


def attempt_to_jsonable(attempt: PracticeAttempt) -> dict:
    return _practice_log.dump_python([attempt], mode="json")[0]


def load_practice_log(data: str | bytes) -> list[PracticeAttempt]:
    try:
        attempts = _practice_log.validate_json(data)
    except ValidationError as e:
        raise StorageFailure(f"Corrupt practice history: {e}") from e

    for attempt in attempts:
        require_aware(attempt.practiced_at, f"{attempt.item_key}.practiced_at")
    return attempts
