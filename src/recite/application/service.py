"""
Scheduler Service: Application layer orchestrator.

Coordinates the progress repository, the practice log, the SM-2 calculator and
the queue builder behind the operations the surrounding product calls.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone

from recite.application.queue_builder import QueueBuildResult, build_due_queue
from recite.application.scheduling.interval_calculator import (
    IntervalCalculator,
    validate_quality,
)
from recite.application.scheduling.retention import RetentionEstimator
from recite.application.session import LowQualityPolicy, ReviewSession
from recite.application.stats.metrics_calculator import (
    EntryMetrics,
    MetricsCalculator,
    PracticeStats,
    ProgressStats,
    predict_completion_date,
    summarize_practice,
)
from recite.domain.constants import (
    DEFAULT_AGGRESSIVENESS,
    DEFAULT_MAX_QUEUE_SIZE,
    MAX_ACCURACY,
    STRONG_STRENGTH,
)
from recite.domain.errors import InvalidPracticeAttempt, ReciteError, StorageFailure
from recite.domain.progress.models import PracticeAttempt, ProgressEntry
from recite.domain.progress.ports import PracticeLog, ProgressRepository

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerService:
    """
    Application service for recording outcomes and building review queues.

    Follows Dependency Inversion: depends on the ProgressRepository abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        repo: ProgressRepository,
        calculator: IntervalCalculator | None = None,
        estimator: RetentionEstimator | None = None,
        max_queue_items: int = DEFAULT_MAX_QUEUE_SIZE,
        aggressiveness: float = DEFAULT_AGGRESSIVENESS,
        low_quality_policy: LowQualityPolicy = LowQualityPolicy.KEEP,
        clock: Callable[[], datetime] = utc_now,
        practice_log: PracticeLog | None = None,
    ):
        """
        Args:
            repo: The repository (port) holding progress entries.
            calculator: Optional custom SM-2 calculator; uses default if not provided.
            estimator: Optional custom retention model; uses default if not provided.
            max_queue_items: Default queue length for get_due_queue.
            aggressiveness: Retention threshold for early-due selection.
            low_quality_policy: How sessions treat items rated below 4.
            clock: Source of the current time, timezone-aware.
            practice_log: Where practice attempts are kept; practice operations
                raise ReciteError without one.
        """
        self._repo = repo
        self._calc = calculator or IntervalCalculator()
        self._estimator = estimator or RetentionEstimator()
        self._metrics = MetricsCalculator(self._estimator)
        self.max_queue_items = max_queue_items
        self.aggressiveness = aggressiveness
        self.low_quality_policy = low_quality_policy
        self._clock = clock
        self._practice = practice_log

    def now(self) -> datetime:
        return self._clock()

    def report_outcome(self, item_key: str, quality: int) -> ProgressEntry:
        """
        Record a practice outcome and persist the rescheduled entry.

        Items never seen before are initialized on the fly.

        Raises:
            InvalidQualityRating: Before any state is touched.
            StorageFailure: If the repository could not persist the update.
        """
        validate_quality(quality)
        if not item_key:
            raise ValueError("item_key must be a non-empty string")

        now = self.now()

        def compute(current: ProgressEntry | None) -> ProgressEntry:
            base = current or ProgressEntry.new(item_key, now)
            return self._calc.apply(base, quality, now)

        try:
            entry = self._repo.update(item_key, compute)
        except StorageFailure as e:
            logger.error(f"Failed to record outcome for {item_key}: {e}")
            raise

        logger.info(
            f"Recorded q={quality} for {item_key}: interval={entry.interval}d "
            f"efactor={entry.efactor:.2f} reviews={entry.total_reviews}"
        )
        return entry

    def build_queue(self, max_items: int | None = None) -> QueueBuildResult:
        """Build the due queue with full diagnostics."""
        limit = self.max_queue_items if max_items is None else max_items
        return build_due_queue(
            self._repo.enumerate(),
            self.now(),
            max_items=limit,
            aggressiveness=self.aggressiveness,
            estimator=self._estimator,
        )

    def get_due_queue(self, max_items: int | None = None) -> list[str]:
        return self.build_queue(max_items).queue

    def get_progress(self, item_key: str) -> ProgressEntry | None:
        return self._repo.get(item_key)

    def get_all_progress(self) -> list[ProgressEntry]:
        return self._repo.enumerate()

    def initialize_item(self, item_key: str) -> ProgressEntry:
        """Create the default entry for item_key unless one already exists."""
        if not item_key:
            raise ValueError("item_key must be a non-empty string")
        return self._repo.initialize(item_key, self.now())

    def get_stats(self) -> ProgressStats:
        return self._metrics.summarize(self._repo.enumerate(), self.now())

    def describe(self, item_key: str) -> EntryMetrics | None:
        entry = self._repo.get(item_key)
        if entry is None:
            return None
        return self._metrics.describe(entry, self.now(), self.aggressiveness)

    def start_session(self) -> ReviewSession:
        """Create a session bound to this service and start it."""
        session = ReviewSession(self, policy=self.low_quality_policy)
        session.start()
        return session

    def predict_completion(self, target: int, daily_rate: float) -> date | None:
        """
        Date by which `target` items reach strong recall at `daily_rate` per day.

        Items count as memorized once their strength reaches STRONG_STRENGTH.
        """
        memorized = sum(1 for e in self._repo.enumerate() if e.strength >= STRONG_STRENGTH)
        return predict_completion_date(memorized, target, daily_rate, self.now().date())

    # ---------- Practice history ----------

    def record_practice(
        self,
        item_key: str,
        accuracy: int,
        total_words: int = 0,
        correct_words: int = 0,
        duration_seconds: float = 0.0,
    ) -> PracticeAttempt:
        """
        Append one practice attempt to the history.

        Practice attempts do not reschedule the item; report_outcome does that.

        Raises:
            InvalidPracticeAttempt: Before anything is stored.
            StorageFailure: If the practice log could not persist the attempt.
        """
        if not item_key:
            raise ValueError("item_key must be a non-empty string")
        _validate_attempt(accuracy, total_words, correct_words, duration_seconds)

        attempt = PracticeAttempt(
            item_key=item_key,
            practiced_at=self.now(),
            accuracy=accuracy,
            total_words=total_words,
            correct_words=correct_words,
            duration_seconds=float(duration_seconds),
        )
        try:
            self._practice_log().append(attempt)
        except StorageFailure as e:
            logger.error(f"Failed to record practice for {item_key}: {e}")
            raise

        logger.info(f"Recorded practice for {item_key}: accuracy={accuracy}%")
        return attempt

    def get_practice_history(self, item_key: str | None = None) -> list[PracticeAttempt]:
        return self._practice_log().history(item_key)

    def get_practice_stats(self, item_key: str) -> PracticeStats:
        return summarize_practice(item_key, self._practice_log().history(item_key))

    def _practice_log(self) -> PracticeLog:
        if self._practice is None:
            raise ReciteError("No practice log is configured")
        return self._practice

    # ---------- Lifecycle ----------

    def close(self) -> None:
        """Release the repository and practice log."""
        self._repo.close()
        if self._practice is not None:
            self._practice.close()

    def __enter__(self) -> "SchedulerService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _validate_attempt(
    accuracy: object, total_words: object, correct_words: object, duration_seconds: object
) -> None:
    for name, value in (
        ("accuracy", accuracy),
        ("total_words", total_words),
        ("correct_words", correct_words),
    ):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidPracticeAttempt(f"{name} must be an integer, got {value!r}")
    if not 0 <= accuracy <= MAX_ACCURACY:
        raise InvalidPracticeAttempt(f"accuracy must be between 0 and 100, got {accuracy}")
    if total_words < 0 or not 0 <= correct_words <= total_words:
        raise InvalidPracticeAttempt(
            f"correct_words must be between 0 and total_words, got {correct_words}/{total_words}"
        )
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, (int, float)):
        raise InvalidPracticeAttempt(f"duration_seconds must be a number, got {duration_seconds!r}")
    if duration_seconds < 0:
        raise InvalidPracticeAttempt(f"duration_seconds must be >= 0, got {duration_seconds}")
