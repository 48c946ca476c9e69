# Infrastructure Progress Adapters Package
from .json_progress import JsonFilePracticeLog, JsonFileProgressRepository
from .memory_progress import InMemoryPracticeLog, InMemoryProgressRepository
from .sqlite_progress import SqlitePracticeLog, SqliteProgressRepository

__all__ = [
    "InMemoryPracticeLog",
    "InMemoryProgressRepository",
    "JsonFilePracticeLog",
    "JsonFileProgressRepository",
    "SqlitePracticeLog",
    "SqliteProgressRepository",
]
