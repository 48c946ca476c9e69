from datetime import date, timedelta

import pytest

from recite.application.stats.metrics_calculator import (
    MetricsCalculator,
    ProgressStats,
    predict_completion_date,
    summarize_practice,
)
from recite.domain.progress.models import PracticeAttempt, ProgressEntry


@pytest.fixture
def calculator():
    return MetricsCalculator()


def entry(key, now, strength, next_review_offset):
    return ProgressEntry(
        item_key=key,
        strength=strength,
        last_reviewed=now - timedelta(days=1),
        next_review=now + next_review_offset,
    )


def test_empty_collection(calculator, now):
    assert calculator.summarize([], now) == ProgressStats()


def test_summarize(calculator, now):
    entries = [
        entry("strong", now, 0.9, timedelta(days=10)),
        entry("edge", now, 0.7, timedelta(hours=2)),  # still today
        entry("mid", now, 0.5, timedelta(days=-3)),
        entry("weak", now, 0.1, timedelta(minutes=-5)),
    ]

    stats = calculator.summarize(entries, now)

    assert stats.total_items == 4
    assert stats.average_strength == pytest.approx(0.55)
    assert stats.strong_items == 2
    assert stats.weak_items == 1
    assert stats.due_today == 2
    assert stats.overdue == 2


def test_average_strength_is_rounded(calculator, now):
    entries = [entry(k, now, s, timedelta(days=1)) for k, s in (("a", 0.331), ("b", 0.335))]
    assert calculator.summarize(entries, now).average_strength == 0.33


def test_describe_overdue_entry(calculator, now):
    e = entry("k", now, 0.5, timedelta(days=-2))

    metrics = calculator.describe(e, now)

    assert metrics.days_overdue == pytest.approx(2.0)
    assert metrics.priority == pytest.approx(22.5)
    assert metrics.is_due
    assert 0.0 < metrics.retention < 1.0


def test_describe_future_entry(calculator, now):
    e = entry("k", now, 1.0, timedelta(days=4))

    metrics = calculator.describe(e, now)

    assert metrics.days_overdue == pytest.approx(-4.0)
    assert not metrics.is_due


def test_predict_completion_date():
    today = date(2026, 3, 1)

    assert predict_completion_date(10, 20, 3, today) == date(2026, 3, 5)
    assert predict_completion_date(0, 6236, 10, today) == today + timedelta(days=624)


@pytest.mark.parametrize("current,target,rate", [(20, 20, 2), (25, 20, 2), (0, 10, 0), (0, 10, -1)])
def test_predict_completion_date_unreachable(current, target, rate):
    assert predict_completion_date(current, target, rate, date(2026, 3, 1)) is None


def test_summarize_practice(now):
    attempts = [
        PracticeAttempt("a", now - timedelta(days=2), 60),
        PracticeAttempt("a", now, 91),
        PracticeAttempt("b", now + timedelta(days=1), 100),
        PracticeAttempt("a", now - timedelta(days=1), 74),
    ]

    stats = summarize_practice("a", attempts)

    assert stats.total_sessions == 3
    assert stats.average_accuracy == 75  # 225 / 3
    assert stats.best_accuracy == 91
    assert stats.last_practiced == now


def test_summarize_practice_rounds_half_up(now):
    attempts = [PracticeAttempt("a", now, 50), PracticeAttempt("a", now, 51)]

    assert summarize_practice("a", attempts).average_accuracy == 51


def test_summarize_practice_empty():
    stats = summarize_practice("a", [])

    assert stats.item_key == "a"
    assert stats.total_sessions == 0
    assert stats.last_practiced is None
