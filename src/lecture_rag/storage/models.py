# src/lecture_rag/storage/models.py

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page number and page size."""

    number: int = 0
    size: int = 20

    def __post_init__(self) -> None:
        if self.number < 0:
            raise ValueError("page number must be >= 0")
        if self.size < 1:
            raise ValueError("page size must be >= 1")

    @property
    def offset(self) -> int:
        return self.number * self.size


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: PageRequest
    total: int

    @classmethod
    def empty(cls, page: PageRequest) -> "Page[T]":
        return cls(items=[], page=page, total=0)

    @classmethod
    def slice(cls, ranked: list[T], page: PageRequest) -> "Page[T]":
        """Cut one page out of a fully ranked list."""
        return cls(
            items=ranked[page.offset : page.offset + page.size],
            page=page,
            total=len(ranked),
        )

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page.size)


@dataclass(frozen=True)
class ProblemImport:
    """A problem that has not been stored yet."""

    source_id: str
    statement: str
    topic: str
    solution: str | None = None
    subtopic: str | None = None
    difficulty: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Problem:
    id: str
    source_id: str
    statement: str
    topic: str
    solution: str | None = None
    subtopic: str | None = None
    difficulty: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


class LectureStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Lecture:
    id: str
    title: str
    transcript: str | None
    status: LectureStatus = LectureStatus.PENDING
    uploaded_by: str | None = None
    source: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Markdown study notes, only when the notes stage ran.
    structured_content: str | None = None


@dataclass(frozen=True)
class LectureChunk:
    id: str
    lecture_id: str
    chunk_index: int
    chunk_text: str
    token_start: int | None = None
    token_end: int | None = None


@dataclass(frozen=True)
class ThemeRecord:
    """A lecture theme as stored."""

    id: str
    lecture_id: str
    name: str
    confidence: float | None
    summary: str | None
    keywords: tuple[str, ...] = ()
    mapped_topic: str | None = None
