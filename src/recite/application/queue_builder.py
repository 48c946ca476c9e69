"""
Queue builder for review sittings.

Builds ordered review queues by:
1. Selecting entries that are scheduled-due or predicted to be fading
2. Scoring them by overdue days, weakness and difficulty
3. Sorting by score and capping the queue length
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from recite.application.scheduling.retention import RetentionEstimator
from recite.domain.constants import (
    DEFAULT_AGGRESSIVENESS,
    DEFAULT_EFACTOR,
    DEFAULT_MAX_QUEUE_SIZE,
    DIFFICULTY_WEIGHT,
    OVERDUE_WEIGHT,
    WEAKNESS_WEIGHT,
)
from recite.domain.progress.models import ProgressEntry

logger = logging.getLogger(__name__)


@dataclass
class QueueBuildResult:
    """Result of queue building operation."""

    queue: list[str]  # Item keys to review, highest priority first
    scores: dict[str, float] = field(default_factory=dict)  # Priority of every eligible item
    eligible_count: int = 0
    truncated: list[str] = field(default_factory=list)  # Eligible items cut by max_items


def priority_score(entry: ProgressEntry, now: datetime) -> float:
    """
    Rank an eligible entry. Higher scores are reviewed first.

    Overdue items dominate, then weak memories, then hard items.
    """
    days_overdue = max(0.0, entry.days_overdue(now))
    return (
        days_overdue * OVERDUE_WEIGHT
        + (1 - entry.strength) * WEAKNESS_WEIGHT
        + (DEFAULT_EFACTOR - entry.efactor) * DIFFICULTY_WEIGHT
    )


def is_due(
    entry: ProgressEntry,
    now: datetime,
    aggressiveness: float = DEFAULT_AGGRESSIVENESS,
    estimator: RetentionEstimator | None = None,
) -> bool:
    """
    Decide whether an entry belongs in today's queue.

    An entry is due once its scheduled date has passed, or earlier if
    the forgetting curve says recall has dropped below aggressiveness.
    """
    if now >= entry.next_review:
        return True

    estimator = estimator or RetentionEstimator()
    return estimator.retention_at(entry, now) < aggressiveness


def build_due_queue(
    entries: Iterable[ProgressEntry],
    now: datetime,
    max_items: int = DEFAULT_MAX_QUEUE_SIZE,
    aggressiveness: float = DEFAULT_AGGRESSIVENESS,
    estimator: RetentionEstimator | None = None,
) -> QueueBuildResult:
    """
    Build the review queue for a sitting.

    Args:
        entries: All known progress entries
        now: Reference time for due checks and overdue days
        max_items: Maximum queue length (default: 20)
        aggressiveness: Retention threshold below which items are due early
        estimator: Retention model; uses the default if not provided

    Returns:
        QueueBuildResult with the ordered queue and diagnostics
    """
    if max_items < 0:
        raise ValueError(f"max_items must be non-negative, got {max_items}")
    if not 0.0 <= aggressiveness <= 1.0:
        raise ValueError(f"aggressiveness must be between 0 and 1, got {aggressiveness}")

    estimator = estimator or RetentionEstimator()

    scores: dict[str, float] = {}
    for entry in entries:
        if is_due(entry, now, aggressiveness, estimator):
            scores[entry.item_key] = priority_score(entry, now)

    # Ties fall back to item key so the order is reproducible
    ranked = sorted(scores, key=lambda key: (-scores[key], key))

    queue = ranked[:max_items]
    truncated = ranked[max_items:]

    logger.debug(
        f"Built queue: {len(queue)} of {len(ranked)} eligible items "
        f"(max_items={max_items}, aggressiveness={aggressiveness})"
    )

    return QueueBuildResult(
        queue=queue,
        scores=scores,
        eligible_count=len(ranked),
        truncated=truncated,
    )
