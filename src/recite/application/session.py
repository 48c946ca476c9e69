"""
Review session state machine.

A session covers one sitting: IDLE -> ACTIVE -> COMPLETE, restartable.
Outcomes are committed as they are recorded; ending a session never
rolls anything back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from recite.domain.constants import REINFORCED_QUALITY
from recite.domain.errors import SessionNotActive
from recite.domain.progress.models import ProgressEntry

if TYPE_CHECKING:
    from recite.application.service import SchedulerService

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETE = "complete"


class LowQualityPolicy(str, Enum):
    """
    What happens to an item rated below 4 during a sitting.

    KEEP leaves it in the working queue but does not offer it again until
    the queue is refreshed.
    REQUEUE moves it to the back so it comes round again before the sitting ends.
    """

    KEEP = "keep"
    REQUEUE = "requeue"


@dataclass
class SessionSummary:
    touched: list[str]
    reinforced: list[str]
    outcomes: int
    started_at: datetime | None
    ended_at: datetime | None
    remaining: list[str] = field(default_factory=list)


class ReviewSession:
    """
    Coordinates one sitting of review against a SchedulerService.
    """

    def __init__(
        self,
        service: "SchedulerService",
        policy: LowQualityPolicy = LowQualityPolicy.KEEP,
        max_items: int | None = None,
    ):
        self._service = service
        self.policy = policy
        self.max_items = max_items

        self.state = SessionState.IDLE
        self.queue: list[str] = []
        self.current_item: str | None = None
        self.touched: list[str] = []
        self.reinforced: set[str] = set()
        self._attempted: set[str] = set()
        self.outcomes = 0
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def remaining(self) -> int:
        return len(self.queue)

    def start(self) -> list[str]:
        """
        Begin (or restart) a sitting with a freshly built working queue.

        An empty queue is not an error; the session is simply empty.
        """
        self.queue = list(self._service.get_due_queue(self.max_items))
        self.current_item = None
        self.touched = []
        self.reinforced = set()
        self._attempted = set()
        self.outcomes = 0
        self.started_at = self._service.now()
        self.ended_at = None
        self.state = SessionState.ACTIVE

        logger.info(f"Review session started with {len(self.queue)} items")
        return list(self.queue)

    def next_item(self) -> str | None:
        """Return the next item to show and make it the current item."""
        if not self.is_active:
            return None
        pending = (key for key in self.queue if key not in self._attempted)
        self.current_item = next(pending, None)
        return self.current_item

    def record_outcome(self, item_key: str, quality: int) -> ProgressEntry:
        """
        Record an outcome for item_key within this sitting.

        Raises:
            SessionNotActive: If the session has not been started or has ended.
            InvalidQualityRating: If quality is not an integer in 0-5.
        """
        if not self.is_active:
            raise SessionNotActive(f"Cannot record outcome for {item_key}: no active session")

        entry = self._service.report_outcome(item_key, quality)
        self.outcomes += 1
        if item_key not in self.touched:
            self.touched.append(item_key)

        if quality >= REINFORCED_QUALITY:
            self.reinforced.add(item_key)
            self._remove(item_key)
        elif self.policy is LowQualityPolicy.REQUEUE:
            self._remove(item_key)
            self.queue.append(item_key)
        else:
            self._attempted.add(item_key)

        if self.current_item == item_key:
            self.current_item = None
        return entry

    def refresh(self) -> list[str]:
        """
        Rebuild the working queue from current progress.

        Items reinforced during this sitting are left out.
        """
        if not self.is_active:
            raise SessionNotActive("Cannot refresh the queue: no active session")

        fresh = self._service.get_due_queue(self.max_items)
        self.queue = [key for key in fresh if key not in self.reinforced]
        self._attempted = set()
        return list(self.queue)

    def end(self) -> SessionSummary | None:
        """
        Finish the sitting. A no-op returning None if no session is active.
        """
        if not self.is_active:
            return None

        remaining = list(self.queue)
        self.queue = []
        self.current_item = None
        self.ended_at = self._service.now()
        self.state = SessionState.COMPLETE

        logger.info(
            f"Review session complete: {self.outcomes} outcomes over "
            f"{len(self.touched)} items, {len(remaining)} left unreviewed"
        )
        summary = self.summary()
        summary.remaining = remaining
        return summary

    def summary(self) -> SessionSummary:
        return SessionSummary(
            touched=list(self.touched),
            reinforced=[key for key in self.touched if key in self.reinforced],
            outcomes=self.outcomes,
            started_at=self.started_at,
            ended_at=self.ended_at,
            remaining=list(self.queue),
        )

    def _remove(self, item_key: str) -> None:
        self.queue = [key for key in self.queue if key != item_key]
