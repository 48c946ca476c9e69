# Application Stats Package
from .metrics_calculator import (
    EntryMetrics,
    MetricsCalculator,
    PracticeStats,
    ProgressStats,
    predict_completion_date,
    summarize_practice,
)

__all__ = [
    "MetricsCalculator",
    "EntryMetrics",
    "PracticeStats",
    "ProgressStats",
    "predict_completion_date",
    "summarize_practice",
]
