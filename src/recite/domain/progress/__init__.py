# Domain Progress Package
from .models import MistakeRecord, PracticeAttempt, ProgressEntry
from .ports import EntryUpdate, PracticeLog, ProgressRepository

__all__ = [
    "MistakeRecord",
    "PracticeAttempt",
    "ProgressEntry",
    "EntryUpdate",
    "PracticeLog",
    "ProgressRepository",
]
