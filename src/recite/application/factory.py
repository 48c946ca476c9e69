"""
Progress Repository Factory
Centralizes the logic for selecting the storage adapters and wiring the service.
"""

import logging

from recite.application.config import AppConfig
from recite.application.service import SchedulerService
from recite.application.session import LowQualityPolicy
from recite.domain.progress.ports import PracticeLog, ProgressRepository
from recite.infrastructure.adapters.json_progress import (
    JsonFilePracticeLog,
    JsonFileProgressRepository,
)
from recite.infrastructure.adapters.memory_progress import (
    InMemoryPracticeLog,
    InMemoryProgressRepository,
)
from recite.infrastructure.adapters.sqlite_progress import (
    SqlitePracticeLog,
    SqliteProgressRepository,
)

logger = logging.getLogger(__name__)


def get_progress_repository(config: AppConfig) -> ProgressRepository:
    """
    Returns the ProgressRepository implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemoryProgressRepository()

    path = config.resolved_store_path()
    logger.debug(f"Progress store: {config.backend} at {path}")

    if config.backend == "sqlite":
        return SqliteProgressRepository(path, timeout=config.sqlite_timeout)

    return JsonFileProgressRepository(path)


def get_practice_log(config: AppConfig) -> PracticeLog:
    """
    Returns the PracticeLog implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemoryPracticeLog()

    path = config.resolved_practice_path()
    logger.debug(f"Practice log: {config.backend} at {path}")

    if config.backend == "sqlite":
        return SqlitePracticeLog(path, timeout=config.sqlite_timeout)

    return JsonFilePracticeLog(path)


def get_scheduler_service(config: AppConfig) -> SchedulerService:
    """
    Wires a SchedulerService from config. Close it (or use it as a context
    manager) to release the storage adapters.
    """
    repo = get_progress_repository(config)
    try:
        practice_log = get_practice_log(config)
    except Exception:
        repo.close()
        raise

    return SchedulerService(
        repo,
        max_queue_items=config.max_queue_items,
        aggressiveness=config.aggressiveness,
        low_quality_policy=LowQualityPolicy(config.low_quality_policy),
        practice_log=practice_log,
    )
