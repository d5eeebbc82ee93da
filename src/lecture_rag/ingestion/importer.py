# src/lecture_rag/ingestion/importer.py

import asyncio
import json
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from lecture_rag.jobs.runner import JobContext, JobRunner, StartResult
from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook
from lecture_rag.retrieval.engine import ProblemRetrievalEngine
from lecture_rag.storage.base import ProblemRepository
from lecture_rag.storage.models import PageRequest, ProblemImport

from .config import IngestionConfig

logger = logging.getLogger(__name__)

REINDEX_JOB_NAME = "vector-reindex"

_LEVEL = re.compile(r"[1-5]")

SAMPLE_PROBLEMS = (
    ProblemImport("sample-algebra-1", "Solve for x: 2x + 5 = 13", "Algebra",
                  solution="x = 4", subtopic="Linear Equations", difficulty=1),
    ProblemImport("sample-algebra-2", "Factor the expression: x² - 9", "Algebra",
                  solution="(x + 3)(x - 3)", subtopic="Factoring", difficulty=2),
    ProblemImport("sample-geometry-1", "Find the area of a circle with radius 5.", "Geometry",
                  solution="A = πr² = 25π ≈ 78.54", subtopic="Circles", difficulty=1),
    ProblemImport("sample-calculus-1", "Find the derivative of f(x) = x³ + 2x", "Calculus",
                  solution="f'(x) = 3x² + 2", subtopic="Derivatives", difficulty=2),
    ProblemImport("sample-probability-1", "What is the probability of rolling a 6 on a fair die?",
                  "Probability", solution="1/6", subtopic="Basic Probability", difficulty=1),
    ProblemImport("sample-number-theory-1", "Find the GCD of 48 and 18.", "Number Theory",
                  solution="GCD(48, 18) = 6", subtopic="GCD", difficulty=1),
    ProblemImport("sample-combinatorics-1", "How many ways can you arrange 4 books on a shelf?",
                  "Combinatorics", solution="4! = 24 ways", subtopic="Permutations", difficulty=1),
    ProblemImport("sample-trigonometry-1", "Find sin(30°).", "Trigonometry",
                  solution="sin(30°) = 1/2", subtopic="Basic Trigonometry", difficulty=1),
)


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int
    failed: int = 0

    def __add__(self, other: "ImportResult") -> "ImportResult":
        return ImportResult(
            self.imported + other.imported,
            self.skipped + other.skipped,
            self.failed + other.failed,
        )


def parse_level(level: Any) -> int | None:
    """MATH-style ``"Level 3"`` to ``3``."""
    if level is None:
        return None
    match = _LEVEL.search(str(level))
    return int(match.group()) if match else None


def parse_math_problem(data: Any, default_topic: str, index: int) -> ProblemImport | None:
    """One MATH dataset record. ``None`` when it has no ``problem`` text."""
    if not isinstance(data, dict) or data.get("problem") is None:
        return None
    solution = data.get("solution")
    return ProblemImport(
        source_id=f"{default_topic}-{index}",
        statement=str(data["problem"]),
        topic=str(data.get("type") or default_topic),
        solution=None if solution is None else str(solution),
        difficulty=parse_level(data.get("level")),
    )


class ProblemImporter:
    """Saves problems to the corpus and, optionally, the vector index.

    Problems whose ``source_id`` is already stored are skipped. Indexing
    runs in chunks with a fixed pause between them to keep the embedding
    backend from being flooded.
    """

    def __init__(
        self,
        problems: ProblemRepository,
        retrieval: ProblemRetrievalEngine,
        config: IngestionConfig = IngestionConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._problems = problems
        self._retrieval = retrieval
        self._config = config
        self.metrics_hook = metrics_hook

    async def import_problems(
        self,
        imports: Sequence[ProblemImport],
        *,
        index_after_save: bool = True,
        index_chunk_size: int | None = None,
        index_delay_seconds: float | None = None,
    ) -> ImportResult:
        existing = await self._problems.existing_source_ids(i.source_id for i in imports)

        fresh: dict[str, ProblemImport] = {}
        skipped = 0
        for item in imports:
            if item.source_id in existing or item.source_id in fresh:
                skipped += 1
                continue
            fresh[item.source_id] = item

        saved = await self._problems.save_all(list(fresh.values()))

        if index_after_save and saved:
            chunk_size = max(index_chunk_size or self._config.index_chunk_size, 1)
            delay = max(
                self._config.index_delay_seconds if index_delay_seconds is None else index_delay_seconds,
                0.0,
            )
            for offset in range(0, len(saved), chunk_size):
                if offset and delay:
                    await asyncio.sleep(delay)
                await self._retrieval.index_problems(saved[offset : offset + chunk_size])

        self.metrics_hook.increment(names.INGESTION_ROWS_TOTAL, len(saved), {"outcome": "imported"})
        self.metrics_hook.increment(names.INGESTION_ROWS_TOTAL, skipped, {"outcome": "skipped"})
        logger.info("Import complete: %d imported, %d skipped", len(saved), skipped)
        return ImportResult(imported=len(saved), skipped=skipped)

    async def import_from_jsonl(
        self, lines: Iterable[str], default_topic: str, **options: Any
    ) -> ImportResult:
        imports = []
        failed = 0
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                item = parse_math_problem(json.loads(line), default_topic, line_number)
            except json.JSONDecodeError as exc:
                logger.warning("Failed to parse line %d: %s", line_number, exc)
                failed += 1
                continue
            if item is not None:
                imports.append(item)

        result = await self.import_problems(imports, **options)
        return result + ImportResult(0, 0, failed)

    async def import_from_json_array(
        self, text: str, default_topic: str, **options: Any
    ) -> ImportResult:
        """Import a JSON array of MATH records.

        Raises:
            ValueError: If ``text`` is not a JSON array.
        """
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("Expected JSON array")
        imports = [
            item
            for index, record in enumerate(data)
            if (item := parse_math_problem(record, default_topic, index)) is not None
        ]
        return await self.import_problems(imports, **options)

    async def create_sample_problems(self) -> ImportResult:
        return await self.import_problems(SAMPLE_PROBLEMS)

    def start_reindex(
        self, jobs: JobRunner, *, chunk_size: int | None = None, clear: bool = True
    ) -> StartResult:
        """Run :meth:`reindex_all` as the ``vector-reindex`` job."""
        return jobs.start(
            REINDEX_JOB_NAME,
            lambda context: self.reindex_all(chunk_size, clear=clear, context=context),
        )

    async def reindex_all(
        self,
        chunk_size: int | None = None,
        *,
        clear: bool = True,
        context: JobContext | None = None,
    ) -> int:
        """Re-embed every stored problem, page by page.

        With ``clear`` the index is emptied first, so documents of problems
        that no longer exist do not survive the rebuild.
        """
        size = max(chunk_size or self._config.index_chunk_size, 1)
        cleared = await self._retrieval.clear_index() if clear else 0
        if context:
            context.update(cleared=cleared, indexed=0, total=None, pages=0)

        indexed = 0
        number = 0
        while True:
            page = await self._problems.find_all(PageRequest(number=number, size=size))
            if not page.items:
                break
            if number and self._config.index_delay_seconds:
                await asyncio.sleep(self._config.index_delay_seconds)
            indexed += await self._retrieval.index_problems(page.items)
            number += 1
            if context:
                context.update(indexed=indexed, total=page.total, pages=number)
            logger.info("Reindexed %d/%d problems", indexed, page.total)
        return indexed
