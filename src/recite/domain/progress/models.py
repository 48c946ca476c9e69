"""
Domain models for per-item review progress.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from recite.domain.constants import DEFAULT_EFACTOR


@dataclass(frozen=True)
class MistakeRecord:
    """
    A single low-quality outcome.

    Attributes:
        recorded_at: When the outcome was recorded.
        quality: The rating that was given (0-2).
    """

    recorded_at: datetime
    quality: int


@dataclass(frozen=True)
class ProgressEntry:
    """
    Scheduling state for one memorized item.

    Entries are immutable; every recorded outcome produces a new entry.

    Attributes:
        item_key: Opaque, stable identifier of the item.
        strength: Heuristic durability of the memory (0.0-1.0).
        last_reviewed: Time of the most recent recorded outcome.
        next_review: Time at or after which the item is due.
        total_reviews: Number of recorded outcomes.
        consecutive_correct: Passing outcomes in a row (the SM-2 repetition count).
        efactor: SM-2 easiness factor, never below 1.3.
        interval: Days between last_reviewed and next_review.
        mistakes: Append-only log of lapses.
    """

    item_key: str
    strength: float
    last_reviewed: datetime
    next_review: datetime
    total_reviews: int = 0
    consecutive_correct: int = 0
    efactor: float = DEFAULT_EFACTOR
    interval: int = 0
    mistakes: tuple[MistakeRecord, ...] = field(default_factory=tuple)

    @classmethod
    def new(cls, item_key: str, now: datetime) -> "ProgressEntry":
        """Default entry for an item seen for the first time; due immediately."""
        return cls(item_key=item_key, strength=0.0, last_reviewed=now, next_review=now)

    @property
    def repetitions(self) -> int:
        return self.consecutive_correct

    def hours_since_review(self, now: datetime) -> float:
        return (now - self.last_reviewed) / timedelta(hours=1)

    def days_overdue(self, now: datetime) -> float:
        """Days past next_review; negative if not yet due."""
        return (now - self.next_review) / timedelta(days=1)


@dataclass(frozen=True)
class PracticeAttempt:
    """
    One graded recitation of an item, as reported by the practice front end.

    Practice attempts are history only; they never move the review schedule.

    Attributes:
        item_key: The item that was recited.
        practiced_at: When the attempt finished.
        accuracy: Percentage of words recited correctly (0-100).
        total_words: Words in the recited text.
        correct_words: Words recited correctly.
        duration_seconds: Length of the attempt.
    """

    item_key: str
    practiced_at: datetime
    accuracy: int
    total_words: int = 0
    correct_words: int = 0
    duration_seconds: float = 0.0
