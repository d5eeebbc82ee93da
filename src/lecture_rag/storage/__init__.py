from .base import LectureRepository, ProblemRepository, TopicSource
from .models import (
    Lecture,
    LectureChunk,
    LectureStatus,
    Page,
    PageRequest,
    Problem,
    ProblemImport,
    ThemeRecord,
)
from .sqlite import Database, SQLiteLectureRepository, SQLiteProblemRepository

__all__ = [
    "Database",
    "Lecture",
    "LectureChunk",
    "LectureRepository",
    "LectureStatus",
    "Page",
    "PageRequest",
    "Problem",
    "ProblemImport",
    "ProblemRepository",
    "SQLiteLectureRepository",
    "SQLiteProblemRepository",
    "ThemeRecord",
    "TopicSource",
]
