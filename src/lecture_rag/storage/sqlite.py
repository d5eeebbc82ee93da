# src/lecture_rag/storage/sqlite.py

"""SQLite repositories for problems and lectures.

One ``apsw`` connection per :class:`Database`, opened lazily, with the schema
created on first use. Blocking calls run in ``asyncio.to_thread`` under a
lock so transactions from different coroutines never interleave.
"""

import asyncio
import json
import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

import apsw

from lecture_rag.errors import LectureNotFoundError

from .base import ChunkLike, LectureRepository, ProblemRepository, ThemeLike
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

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS problems (
    id TEXT PRIMARY KEY,
    source_id TEXT NOT NULL UNIQUE,
    statement TEXT NOT NULL,
    solution TEXT,
    topic TEXT NOT NULL,
    subtopic TEXT,
    difficulty INTEGER,
    metadata TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_problems_topic ON problems(topic);

CREATE TABLE IF NOT EXISTS lectures (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    source TEXT,
    uploaded_by TEXT,
    transcript TEXT,
    status TEXT NOT NULL DEFAULT 'PENDING',
    error_message TEXT,
    structured_content TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lectures_status ON lectures(status);

CREATE TABLE IF NOT EXISTS lecture_chunks (
    id TEXT PRIMARY KEY,
    lecture_id TEXT NOT NULL REFERENCES lectures(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    chunk_text TEXT NOT NULL,
    token_start INTEGER,
    token_end INTEGER
);
CREATE INDEX IF NOT EXISTS idx_lecture_chunks_lecture_id ON lecture_chunks(lecture_id);

CREATE TABLE IF NOT EXISTS themes (
    id TEXT PRIMARY KEY,
    lecture_id TEXT NOT NULL REFERENCES lectures(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    confidence REAL,
    summary TEXT,
    keywords TEXT,
    mapped_topic TEXT
);
CREATE INDEX IF NOT EXISTS idx_themes_lecture_id ON themes(lecture_id);
"""

_PROBLEM_COLUMNS = (
    "id, source_id, statement, solution, topic, subtopic, difficulty, metadata, created_at"
)
_LECTURE_COLUMNS = (
    "id, title, transcript, status, uploaded_by, source, error_message, created_at, updated_at, "
    "structured_content"
)

# Stay well below SQLite's bound-parameter limit.
_IN_BATCH = 500


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(count: int) -> str:
    return ",".join("?" * count)


def _problem(row: tuple) -> Problem:
    id_, source_id, statement, solution, topic, subtopic, difficulty, metadata, created_at = row
    return Problem(
        id=id_,
        source_id=source_id,
        statement=statement,
        solution=solution,
        topic=topic,
        subtopic=subtopic,
        difficulty=difficulty,
        metadata=json.loads(metadata) if metadata else {},
        created_at=datetime.fromisoformat(created_at),
    )


def _lecture(row: tuple) -> Lecture:
    (
        id_,
        title,
        transcript,
        status,
        uploaded_by,
        source,
        error_message,
        created_at,
        updated_at,
        structured_content,
    ) = row
    return Lecture(
        id=id_,
        title=title,
        transcript=transcript,
        status=LectureStatus(status),
        uploaded_by=uploaded_by,
        source=source,
        error_message=error_message,
        created_at=datetime.fromisoformat(created_at),
        updated_at=datetime.fromisoformat(updated_at),
        structured_content=structured_content,
    )


class Database:
    """Shared ``apsw`` connection for the SQLite repositories."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        self._path = str(path)
        self._conn: apsw.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> apsw.Connection:
        if self._conn is None:
            conn = apsw.Connection(self._path)
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute(_SCHEMA)
            self._conn = conn
            logger.info("Opened database at %s", self._path)
        return self._conn

    async def run(self, fn: Callable[[apsw.Connection], T]) -> T:
        def _call() -> T:
            with self._lock:
                return fn(self._get_connection())

        return await asyncio.to_thread(_call)

    async def close(self) -> None:
        if self._conn:
            await asyncio.to_thread(self._conn.close)
            self._conn = None


class SQLiteProblemRepository(ProblemRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def find_by_id(self, problem_id: str) -> Problem | None:
        def _find(conn: apsw.Connection) -> Problem | None:
            rows = list(
                conn.execute(f"SELECT {_PROBLEM_COLUMNS} FROM problems WHERE id = ?", (problem_id,))
            )
            return _problem(rows[0]) if rows else None

        return await self._db.run(_find)

    async def find_by_topic(self, topic: str, page: PageRequest) -> Page[Problem]:
        return await self.find_by_topics([topic], page)

    async def find_by_topics(self, topics: Sequence[str], page: PageRequest) -> Page[Problem]:
        topics = list(dict.fromkeys(topics))
        if not topics:
            return Page.empty(page)

        def _find(conn: apsw.Connection) -> Page[Problem]:
            marks = _placeholders(len(topics))
            ((total,),) = list(
                conn.execute(f"SELECT COUNT(*) FROM problems WHERE topic IN ({marks})", topics)
            )
            rows = conn.execute(
                f"SELECT {_PROBLEM_COLUMNS} FROM problems WHERE topic IN ({marks}) "
                "ORDER BY rowid LIMIT ? OFFSET ?",
                (*topics, page.size, page.offset),
            )
            return Page(items=[_problem(row) for row in rows], page=page, total=total)

        return await self._db.run(_find)

    async def find_all_by_topics(self, topics: Sequence[str]) -> list[Problem]:
        topics = list(dict.fromkeys(topics))
        if not topics:
            return []

        def _find(conn: apsw.Connection) -> list[Problem]:
            rows = conn.execute(
                f"SELECT {_PROBLEM_COLUMNS} FROM problems "
                f"WHERE topic IN ({_placeholders(len(topics))}) ORDER BY rowid",
                topics,
            )
            return [_problem(row) for row in rows]

        return await self._db.run(_find)

    async def find_all(self, page: PageRequest) -> Page[Problem]:
        def _find(conn: apsw.Connection) -> Page[Problem]:
            ((total,),) = list(conn.execute("SELECT COUNT(*) FROM problems"))
            rows = conn.execute(
                f"SELECT {_PROBLEM_COLUMNS} FROM problems ORDER BY rowid LIMIT ? OFFSET ?",
                (page.size, page.offset),
            )
            return Page(items=[_problem(row) for row in rows], page=page, total=total)

        return await self._db.run(_find)

    async def find_all_topics(self) -> list[str]:
        def _find(conn: apsw.Connection) -> list[str]:
            return [
                topic for (topic,) in conn.execute("SELECT DISTINCT topic FROM problems ORDER BY topic")
            ]

        return await self._db.run(_find)

    async def existing_source_ids(self, source_ids: Iterable[str]) -> set[str]:
        wanted = list(dict.fromkeys(source_ids))

        def _find(conn: apsw.Connection) -> set[str]:
            found: set[str] = set()
            for i in range(0, len(wanted), _IN_BATCH):
                batch = wanted[i : i + _IN_BATCH]
                rows = conn.execute(
                    f"SELECT source_id FROM problems WHERE source_id IN ({_placeholders(len(batch))})",
                    batch,
                )
                found.update(source_id for (source_id,) in rows)
            return found

        return await self._db.run(_find)

    async def save_all(self, problems: Sequence[ProblemImport]) -> list[Problem]:
        created_at = _now()
        saved = [
            Problem(
                id=str(uuid.uuid4()),
                source_id=p.source_id,
                statement=p.statement,
                topic=p.topic,
                solution=p.solution,
                subtopic=p.subtopic,
                difficulty=p.difficulty,
                metadata=dict(p.metadata),
                created_at=datetime.fromisoformat(created_at),
            )
            for p in problems
        ]
        if not saved:
            return []

        def _save(conn: apsw.Connection) -> None:
            with conn:
                conn.executemany(
                    f"INSERT INTO problems ({_PROBLEM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        (
                            p.id,
                            p.source_id,
                            p.statement,
                            p.solution,
                            p.topic,
                            p.subtopic,
                            p.difficulty,
                            json.dumps(dict(p.metadata)) if p.metadata else None,
                            created_at,
                        )
                        for p in saved
                    ],
                )

        await self._db.run(_save)
        logger.debug("Saved %d problems", len(saved))
        return saved

    async def count(self) -> int:
        def _count(conn: apsw.Connection) -> int:
            ((total,),) = list(conn.execute("SELECT COUNT(*) FROM problems"))
            return int(total)

        return await self._db.run(_count)


class SQLiteLectureRepository(LectureRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def create(
        self,
        *,
        title: str,
        transcript: str | None,
        uploaded_by: str | None = None,
        source: str | None = None,
    ) -> Lecture:
        now = _now()
        lecture_id = str(uuid.uuid4())

        def _create(conn: apsw.Connection) -> None:
            conn.execute(
                f"INSERT INTO lectures ({_LECTURE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    lecture_id,
                    title,
                    transcript,
                    LectureStatus.PENDING.value,
                    uploaded_by,
                    source,
                    None,
                    now,
                    now,
                    None,
                ),
            )

        await self._db.run(_create)
        return Lecture(
            id=lecture_id,
            title=title,
            transcript=transcript,
            uploaded_by=uploaded_by,
            source=source,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    async def find_by_id(self, lecture_id: str) -> Lecture | None:
        return await self._db.run(lambda conn: self._find(conn, lecture_id))

    @staticmethod
    def _find(conn: apsw.Connection, lecture_id: str) -> Lecture | None:
        rows = list(
            conn.execute(f"SELECT {_LECTURE_COLUMNS} FROM lectures WHERE id = ?", (lecture_id,))
        )
        return _lecture(rows[0]) if rows else None

    async def list_lectures(self, page: PageRequest) -> Page[Lecture]:
        def _list(conn: apsw.Connection) -> Page[Lecture]:
            ((total,),) = list(conn.execute("SELECT COUNT(*) FROM lectures"))
            rows = conn.execute(
                f"SELECT {_LECTURE_COLUMNS} FROM lectures "
                "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
                (page.size, page.offset),
            )
            return Page(items=[_lecture(row) for row in rows], page=page, total=total)

        return await self._db.run(_list)

    async def update_status(
        self, lecture_id: str, status: LectureStatus, error_message: str | None = None
    ) -> Lecture:
        def _update(conn: apsw.Connection) -> Lecture | None:
            conn.execute(
                "UPDATE lectures SET status = ?, error_message = ?, updated_at = ? WHERE id = ?",
                (status.value, error_message, _now(), lecture_id),
            )
            return self._find(conn, lecture_id)

        lecture = await self._db.run(_update)
        if lecture is None:
            raise LectureNotFoundError(lecture_id)
        return lecture

    async def save_structured_content(self, lecture_id: str, content: str | None) -> Lecture:
        def _save(conn: apsw.Connection) -> Lecture | None:
            conn.execute(
                "UPDATE lectures SET structured_content = ?, updated_at = ? WHERE id = ?",
                (content, _now(), lecture_id),
            )
            return self._find(conn, lecture_id)

        lecture = await self._db.run(_save)
        if lecture is None:
            raise LectureNotFoundError(lecture_id)
        return lecture

    async def save_chunks(self, lecture_id: str, chunks: Sequence[ChunkLike]) -> list[LectureChunk]:
        saved = [
            LectureChunk(
                id=str(uuid.uuid4()),
                lecture_id=lecture_id,
                chunk_index=chunk.index,
                chunk_text=chunk.text,
                token_start=chunk.token_start,
                token_end=chunk.token_end,
            )
            for chunk in chunks
        ]

        def _save(conn: apsw.Connection) -> None:
            with conn:
                conn.execute("DELETE FROM lecture_chunks WHERE lecture_id = ?", (lecture_id,))
                conn.executemany(
                    "INSERT INTO lecture_chunks "
                    "(id, lecture_id, chunk_index, chunk_text, token_start, token_end) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    [
                        (c.id, c.lecture_id, c.chunk_index, c.chunk_text, c.token_start, c.token_end)
                        for c in saved
                    ],
                )

        await self._db.run(_save)
        return saved

    async def find_chunks(self, lecture_id: str) -> list[LectureChunk]:
        def _find(conn: apsw.Connection) -> list[LectureChunk]:
            rows = conn.execute(
                "SELECT id, lecture_id, chunk_index, chunk_text, token_start, token_end "
                "FROM lecture_chunks WHERE lecture_id = ? ORDER BY chunk_index",
                (lecture_id,),
            )
            return [LectureChunk(*row) for row in rows]

        return await self._db.run(_find)

    async def save_themes(self, lecture_id: str, themes: Sequence[ThemeLike]) -> list[ThemeRecord]:
        saved = [
            ThemeRecord(
                id=str(uuid.uuid4()),
                lecture_id=lecture_id,
                name=theme.name,
                confidence=theme.confidence,
                summary=theme.summary,
                keywords=tuple(theme.keywords),
                mapped_topic=theme.mapped_topic,
            )
            for theme in themes
        ]

        def _save(conn: apsw.Connection) -> None:
            with conn:
                conn.execute("DELETE FROM themes WHERE lecture_id = ?", (lecture_id,))
                conn.executemany(
                    "INSERT INTO themes "
                    "(id, lecture_id, position, name, confidence, summary, keywords, mapped_topic) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        (
                            t.id,
                            t.lecture_id,
                            position,
                            t.name,
                            t.confidence,
                            t.summary,
                            json.dumps(list(t.keywords)),
                            t.mapped_topic,
                        )
                        for position, t in enumerate(saved)
                    ],
                )

        await self._db.run(_save)
        return saved

    async def find_themes(self, lecture_id: str) -> list[ThemeRecord]:
        def _find(conn: apsw.Connection) -> list[ThemeRecord]:
            rows = conn.execute(
                "SELECT id, lecture_id, name, confidence, summary, keywords, mapped_topic "
                "FROM themes WHERE lecture_id = ? ORDER BY position",
                (lecture_id,),
            )
            return [
                ThemeRecord(
                    id=id_,
                    lecture_id=lid,
                    name=name,
                    confidence=confidence,
                    summary=summary,
                    keywords=tuple(json.loads(keywords)) if keywords else (),
                    mapped_topic=mapped_topic,
                )
                for id_, lid, name, confidence, summary, keywords, mapped_topic in rows
            ]

        return await self._db.run(_find)

    async def delete(self, lecture_id: str) -> bool:
        def _delete(conn: apsw.Connection) -> bool:
            conn.execute("DELETE FROM lectures WHERE id = ?", (lecture_id,))
            return conn.changes() > 0

        return await self._db.run(_delete)
