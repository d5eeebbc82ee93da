import json
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from lecture_rag.embeddings.base import Embedding
from lecture_rag.ingestion import (
    REINDEX_JOB_NAME,
    SAMPLE_PROBLEMS,
    ImportResult,
    IngestionConfig,
    ProblemImporter,
    parse_level,
    parse_math_problem,
)
from lecture_rag.jobs import JobRunner, JobState
from lecture_rag.observability.base import NoOpMetricsHook
from lecture_rag.retrieval import ProblemRetrievalEngine, VectorDocumentIndex
from lecture_rag.storage import Database, ProblemImport, SQLiteProblemRepository
from lecture_rag.vectorstores import SQLiteVectorStore
from lecture_rag.vectorstores.types import VectorItem


@pytest_asyncio.fixture
async def repository() -> AsyncIterator[SQLiteProblemRepository]:
    db = Database(":memory:")
    yield SQLiteProblemRepository(db)
    await db.close()


@pytest.fixture
def retrieval() -> MagicMock:
    engine = MagicMock()
    engine.index_problems = AsyncMock(side_effect=lambda problems: len(problems))
    engine.clear_index = AsyncMock(return_value=7)
    return engine


def _importer(repository, retrieval, **config) -> ProblemImporter:
    return ProblemImporter(
        repository, retrieval, IngestionConfig(index_delay_seconds=0, **config)
    )


class TestParsing:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [("Level 3", 3), ("Level ?", None), (None, None), (5, 5), ("level 9", None)],
    )
    def test_parse_level(self, level: object, expected: int | None) -> None:
        assert parse_level(level) == expected

    def test_parse_math_problem(self) -> None:
        item = parse_math_problem(
            {"problem": "Solve", "solution": "x=1", "type": "Algebra", "level": "Level 2"},
            "MATH",
            7,
        )

        assert item == ProblemImport(
            source_id="MATH-7", statement="Solve", topic="Algebra", solution="x=1", difficulty=2
        )

    def test_parse_math_problem_defaults_topic(self) -> None:
        item = parse_math_problem({"problem": "Solve"}, "MATH", 0)

        assert item is not None
        assert item.topic == "MATH"
        assert item.solution is None

    @pytest.mark.parametrize("data", [{"solution": "x"}, [], "text", None])
    def test_parse_math_problem_rejects(self, data: object) -> None:
        assert parse_math_problem(data, "MATH", 0) is None


class TestImportResult:
    def test_addition(self) -> None:
        assert ImportResult(1, 2, 3) + ImportResult(4, 5) == ImportResult(5, 7, 3)


class TestProblemImporter:
    @pytest.mark.asyncio
    async def test_skips_existing_and_duplicate_source_ids(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)
        await repository.save_all([ProblemImport("p1", "old", "Algebra")])

        result = await importer.import_problems(
            [
                ProblemImport("p1", "again", "Algebra"),
                ProblemImport("p2", "new", "Algebra"),
                ProblemImport("p2", "duplicate in batch", "Algebra"),
            ]
        )

        assert result == ImportResult(imported=1, skipped=2)
        assert await repository.count() == 2

    @pytest.mark.asyncio
    async def test_indexes_in_chunks_with_delay(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)
        imports = [ProblemImport(f"p{i}", "s", "Algebra") for i in range(5)]

        with patch("lecture_rag.ingestion.importer.asyncio.sleep", new=AsyncMock()) as sleep:
            await importer.import_problems(imports, index_chunk_size=2, index_delay_seconds=0.5)

        sizes = [len(call.args[0]) for call in retrieval.index_problems.await_args_list]
        assert sizes == [2, 2, 1]
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_index_after_save_can_be_disabled(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)

        await importer.import_problems(
            [ProblemImport("p1", "s", "Algebra")], index_after_save=False
        )

        retrieval.index_problems.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_import_from_jsonl_counts_bad_lines(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)
        lines = [
            json.dumps({"problem": "One", "type": "Algebra"}),
            "",
            "{not json",
            json.dumps({"solution": "no problem text"}),
            json.dumps({"problem": "Two", "level": "Level 4"}),
        ]

        result = await importer.import_from_jsonl(lines, "MATH")

        assert result == ImportResult(imported=2, skipped=0, failed=1)
        assert await repository.existing_source_ids(["MATH-1", "MATH-5"]) == {"MATH-1", "MATH-5"}

    @pytest.mark.asyncio
    async def test_import_from_json_array(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)

        result = await importer.import_from_json_array(
            json.dumps([{"problem": "A"}, {"problem": "B"}]), "MATH"
        )

        assert result.imported == 2
        assert await repository.existing_source_ids(["MATH-0", "MATH-1"]) == {"MATH-0", "MATH-1"}

    @pytest.mark.asyncio
    async def test_import_from_json_array_rejects_objects(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        with pytest.raises(ValueError, match="Expected JSON array"):
            await _importer(repository, retrieval).import_from_json_array('{"problem": "A"}', "MATH")

    @pytest.mark.asyncio
    async def test_sample_problems_are_idempotent(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)

        first = await importer.create_sample_problems()
        second = await importer.create_sample_problems()

        assert first == ImportResult(imported=len(SAMPLE_PROBLEMS), skipped=0)
        assert second == ImportResult(imported=0, skipped=len(SAMPLE_PROBLEMS))
        assert "Geometry" in await repository.find_all_topics()

    @pytest.mark.asyncio
    async def test_reindex_all(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)
        await repository.save_all([ProblemImport(f"p{i}", "s", "Algebra") for i in range(5)])

        indexed = await importer.reindex_all(chunk_size=2)

        assert indexed == 5
        assert retrieval.index_problems.await_count == 3

    @pytest.mark.asyncio
    async def test_reindex_clears_first_unless_told_not_to(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        importer = _importer(repository, retrieval)

        await importer.reindex_all()
        retrieval.clear_index.assert_awaited_once()

        retrieval.clear_index.reset_mock()
        await importer.reindex_all(clear=False)
        retrieval.clear_index.assert_not_awaited()


class FlatEmbeddings:
    metrics_hook = NoOpMetricsHook()

    async def embed(self, texts: list[str]) -> list[Embedding]:
        return [Embedding(vector=[1.0, float(len(text) % 7) + 1.0]) for text in texts]


class TestReindexJob:
    @pytest.mark.asyncio
    async def test_job_reports_progress(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        jobs = JobRunner()
        importer = _importer(repository, retrieval)
        await repository.save_all([ProblemImport(f"p{i}", "s", "Algebra") for i in range(5)])

        started = importer.start_reindex(jobs, chunk_size=2)
        again = importer.start_reindex(jobs, chunk_size=2)
        status = await jobs.wait(REINDEX_JOB_NAME)

        assert started.started is True
        assert again.reason == "already_running"
        assert status.state is JobState.COMPLETED
        assert status.progress == {"cleared": 7, "indexed": 5, "total": 5, "pages": 3}
        assert status.finished_at is not None

    @pytest.mark.asyncio
    async def test_job_failure_is_reported(
        self, repository: SQLiteProblemRepository, retrieval: MagicMock
    ) -> None:
        jobs = JobRunner()
        retrieval.clear_index.side_effect = RuntimeError("store offline")

        _importer(repository, retrieval).start_reindex(jobs)
        status = await jobs.wait(REINDEX_JOB_NAME)

        assert status.state is JobState.FAILED
        assert status.error == "store offline"

    @pytest.mark.asyncio
    async def test_stale_documents_are_gone_after_reindex(
        self, repository: SQLiteProblemRepository
    ) -> None:
        store = SQLiteVectorStore(db_path=":memory:", dimensions=2)
        index = VectorDocumentIndex(FlatEmbeddings(), store)
        engine = ProblemRetrievalEngine(repository, index)
        importer = _importer(repository, engine)
        (problem,) = await repository.save_all([ProblemImport("p1", "Solve x", "Algebra")])
        await store.upsert(
            namespace="problems",
            items=[VectorItem(id="deleted-problem", vector=[1.0, 1.0], metadata={})],
        )

        indexed = await importer.reindex_all()

        assert indexed == 1
        hits = await index.similarity_search("anything", top_k=10)
        assert [doc.id for doc in hits] == [problem.id]
        await store.close()
