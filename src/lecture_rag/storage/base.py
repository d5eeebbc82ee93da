# src/lecture_rag/storage/base.py

from collections.abc import Iterable, Sequence
from typing import Protocol

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


class TopicSource(Protocol):
    async def find_all_topics(self) -> list[str]:
        """Distinct problem topics, sorted."""
        ...


class ProblemRepository(TopicSource, Protocol):
    async def find_by_id(self, problem_id: str) -> Problem | None: ...

    async def find_by_topic(self, topic: str, page: PageRequest) -> Page[Problem]: ...

    async def find_by_topics(self, topics: Sequence[str], page: PageRequest) -> Page[Problem]: ...

    async def find_all_by_topics(self, topics: Sequence[str]) -> list[Problem]:
        """Every problem whose topic is in ``topics``, unpaged."""
        ...

    async def find_all(self, page: PageRequest) -> Page[Problem]: ...

    async def existing_source_ids(self, source_ids: Iterable[str]) -> set[str]: ...

    async def save_all(self, problems: Sequence[ProblemImport]) -> list[Problem]:
        """Insert in one transaction, assigning new ids.

        Raises:
            apsw.ConstraintError: If a ``source_id`` is already stored.
        """
        ...

    async def count(self) -> int: ...


class ChunkLike(Protocol):
    text: str
    index: int
    token_start: int
    token_end: int


class ThemeLike(Protocol):
    name: str
    confidence: float
    summary: str
    keywords: Sequence[str]
    mapped_topic: str | None


class LectureRepository(Protocol):
    async def create(
        self,
        *,
        title: str,
        transcript: str | None,
        uploaded_by: str | None = None,
        source: str | None = None,
    ) -> Lecture: ...

    async def find_by_id(self, lecture_id: str) -> Lecture | None: ...

    async def list_lectures(self, page: PageRequest) -> Page[Lecture]: ...

    async def update_status(
        self, lecture_id: str, status: LectureStatus, error_message: str | None = None
    ) -> Lecture: ...

    async def save_structured_content(self, lecture_id: str, content: str | None) -> Lecture: ...

    async def save_chunks(
        self, lecture_id: str, chunks: Sequence[ChunkLike]
    ) -> list[LectureChunk]:
        """Replace the lecture's chunks."""
        ...

    async def find_chunks(self, lecture_id: str) -> list[LectureChunk]: ...

    async def save_themes(
        self, lecture_id: str, themes: Sequence[ThemeLike]
    ) -> list[ThemeRecord]:
        """Replace the lecture's themes."""
        ...

    async def find_themes(self, lecture_id: str) -> list[ThemeRecord]: ...

    async def delete(self, lecture_id: str) -> bool: ...
