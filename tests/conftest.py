from datetime import datetime, timedelta, timezone

import pytest

from recite.application.service import SchedulerService
from recite.infrastructure.adapters.memory_progress import (
    InMemoryPracticeLog,
    InMemoryProgressRepository,
)

NOW = datetime(2026, 3, 1, 9, 30, 0, 123456, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for services and sessions."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_repo():
    return InMemoryProgressRepository()


@pytest.fixture
def practice_log():
    return InMemoryPracticeLog()


@pytest.fixture
def service(memory_repo, practice_log, clock):
    return SchedulerService(memory_repo, clock=clock, practice_log=practice_log)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and default stores
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "RECITE_BACKEND",
        "RECITE_STORE_PATH",
        "RECITE_MAX_QUEUE_ITEMS",
        "RECITE_VERBOSE",
        "RECITE_LOG_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
