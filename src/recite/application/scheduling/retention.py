"""
Forgetting-curve retention estimate.

R = e^(-t/S) where t = hours since the last review and
S = strength * 24 * 30 (a strength of 1.0 holds for roughly a month).
"""

import math
from datetime import datetime

from recite.domain.constants import MIN_MEMORY_HORIZON_HOURS, STRENGTH_HORIZON_HOURS
from recite.domain.progress.models import ProgressEntry


class RetentionEstimator:
    """
    Estimates the probability of successful recall.

    Stateless and side-effect free.
    """

    def estimate(self, hours_since_review: float, strength: float) -> float:
        hours = max(0.0, hours_since_review)
        horizon = max(0.0, min(1.0, strength)) * STRENGTH_HORIZON_HOURS
        if horizon <= 0:
            horizon = MIN_MEMORY_HORIZON_HOURS

        retention = math.exp(-hours / horizon)
        return max(0.0, min(1.0, retention))

    def retention_at(self, entry: ProgressEntry, now: datetime) -> float:
        return self.estimate(entry.hours_since_review(now), entry.strength)
