"""
Metrics calculator for deriving insights from progress entries.

This is a pure computation module with no I/O.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from recite.application.queue_builder import is_due, priority_score
from recite.application.scheduling.interval_calculator import round_half_up
from recite.application.scheduling.retention import RetentionEstimator
from recite.domain.constants import DEFAULT_AGGRESSIVENESS, STRONG_STRENGTH, WEAK_STRENGTH
from recite.domain.progress.models import PracticeAttempt, ProgressEntry


@dataclass
class ProgressStats:
    """
    Collection-wide summary of review progress.
    """

    total_items: int = 0
    average_strength: float = 0.0
    strong_items: int = 0  # strength >= 0.7
    weak_items: int = 0  # strength < 0.3
    due_today: int = 0  # next_review falls on today's date
    overdue: int = 0  # next_review already passed


@dataclass
class EntryMetrics:
    """
    A single entry enriched with computed metrics.
    """

    item_key: str
    retention: float
    days_overdue: float  # Negative if not yet due
    priority: float
    is_due: bool


@dataclass
class PracticeStats:
    """
    Practice-history summary for one item.
    """

    item_key: str
    total_sessions: int = 0
    average_accuracy: int = 0  # whole percentage, rounded half up
    best_accuracy: int = 0
    last_practiced: datetime | None = None


class MetricsCalculator:
    """
    Computes derived metrics from ProgressEntry objects.

    Stateless and side-effect free.
    """

    def __init__(self, estimator: RetentionEstimator | None = None):
        self._estimator = estimator or RetentionEstimator()

    def summarize(self, entries: Iterable[ProgressEntry], now: datetime) -> ProgressStats:
        entries = list(entries)
        if not entries:
            return ProgressStats()

        average = sum(e.strength for e in entries) / len(entries)

        return ProgressStats(
            total_items=len(entries),
            average_strength=round(average, 2),
            strong_items=sum(1 for e in entries if e.strength >= STRONG_STRENGTH),
            weak_items=sum(1 for e in entries if e.strength < WEAK_STRENGTH),
            due_today=sum(1 for e in entries if e.next_review.date() == now.date()),
            overdue=sum(1 for e in entries if e.next_review < now),
        )

    def describe(
        self,
        entry: ProgressEntry,
        now: datetime,
        aggressiveness: float = DEFAULT_AGGRESSIVENESS,
    ) -> EntryMetrics:
        return EntryMetrics(
            item_key=entry.item_key,
            retention=self._estimator.retention_at(entry, now),
            days_overdue=entry.days_overdue(now),
            priority=priority_score(entry, now),
            is_due=is_due(entry, now, aggressiveness, self._estimator),
        )


def predict_completion_date(
    current: int, target: int, daily_rate: float, today: date
) -> date | None:
    """
    Predict when `target` items will be memorized at `daily_rate` items per day.

    Returns None if the rate is not positive or the target is already reached.
    """
    if daily_rate <= 0 or current >= target:
        return None

    days_required = math.ceil((target - current) / daily_rate)
    return today + timedelta(days=days_required)


def summarize_practice(item_key: str, attempts: Iterable[PracticeAttempt]) -> PracticeStats:
    attempts = [a for a in attempts if a.item_key == item_key]
    if not attempts:
        return PracticeStats(item_key=item_key)

    return PracticeStats(
        item_key=item_key,
        total_sessions=len(attempts),
        average_accuracy=round_half_up(sum(a.accuracy for a in attempts) / len(attempts)),
        best_accuracy=max(a.accuracy for a in attempts),
        last_practiced=max(a.practiced_at for a in attempts),
    )
