"""
SM-2 interval calculator.

This is a pure computation module with no I/O.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from recite.domain.constants import (
    DEFAULT_EFACTOR,
    FIRST_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    MAX_QUALITY,
    MIN_EFACTOR,
    MIN_QUALITY,
    PASSING_QUALITY,
    SECOND_INTERVAL_DAYS,
    STRENGTH_STREAK_SATURATION,
)
from recite.domain.errors import InvalidQualityRating
from recite.domain.progress.models import MistakeRecord, ProgressEntry


@dataclass(frozen=True)
class IntervalResult:
    """Scheduling parameters produced by one SM-2 step."""

    interval: int
    repetitions: int
    efactor: float


def validate_quality(quality: object) -> int:
    """
    Return quality unchanged if it is an integer rating in 0-5.

    Raises:
        InvalidQualityRating: For bools, floats, strings or out-of-range ints.
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityRating(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidQualityRating(quality)
    return quality


def round_half_up(value: float) -> int:
    # 6.5 -> 7, not banker's rounding
    return math.floor(value + 0.5)


class IntervalCalculator:
    """
    Computes SM-2 scheduling updates.

    Stateless and side-effect free.
    """

    def compute_next(
        self,
        quality: int,
        repetitions: int = 0,
        efactor: float = DEFAULT_EFACTOR,
        interval: int = 0,
    ) -> IntervalResult:
        """
        Run one SM-2 step.

        Args:
            quality: Recall rating, 0 (blackout) to 5 (perfect).
            repetitions: Consecutive passing reviews so far.
            efactor: Current easiness factor.
            interval: Current interval in days.

        Returns:
            IntervalResult with the new interval, repetition count and efactor.
        """
        validate_quality(quality)

        miss = MAX_QUALITY - quality
        new_efactor = max(MIN_EFACTOR, efactor + (0.1 - miss * (0.08 + miss * 0.02)))

        if quality < PASSING_QUALITY:
            return IntervalResult(
                interval=LAPSE_INTERVAL_DAYS, repetitions=0, efactor=new_efactor
            )

        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = FIRST_INTERVAL_DAYS
        elif new_repetitions == 2:
            new_interval = SECOND_INTERVAL_DAYS
        else:
            new_interval = round_half_up(interval * new_efactor)

        return IntervalResult(
            interval=new_interval, repetitions=new_repetitions, efactor=new_efactor
        )

    def compute_strength(self, entry: ProgressEntry, quality: int) -> float:
        """
        Memory strength after an outcome, from the entry's pre-update state.

        strength = (efactor / 2.5) * min(1, streak / 5) * (quality / 5), clamped to [0, 1].
        """
        streak_weight = min(1.0, entry.consecutive_correct / STRENGTH_STREAK_SATURATION)
        strength = (entry.efactor / DEFAULT_EFACTOR) * streak_weight * (quality / MAX_QUALITY)
        return max(0.0, min(1.0, strength))

    def apply(self, entry: ProgressEntry, quality: int, now: datetime) -> ProgressEntry:
        """
        Record one outcome against an entry and return the updated entry.
        """
        result = self.compute_next(
            quality, entry.consecutive_correct, entry.efactor, entry.interval
        )

        mistakes = entry.mistakes
        if quality < PASSING_QUALITY:
            mistakes = mistakes + (MistakeRecord(recorded_at=now, quality=quality),)

        return replace(
            entry,
            strength=self.compute_strength(entry, quality),
            last_reviewed=now,
            next_review=now + timedelta(days=result.interval),
            total_reviews=entry.total_reviews + 1,
            consecutive_correct=result.repetitions,
            efactor=result.efactor,
            interval=result.interval,
            mistakes=mistakes,
        )
