# src/lecture_rag/app.py

"""Wires every component from an :class:`AppConfig`."""

import logging
from dataclasses import dataclass

from lecture_rag.config import AppConfig
from lecture_rag.embeddings import EmbeddingsClient, create_embeddings_client
from lecture_rag.ingestion import DeepMathIngestion, ProblemImporter
from lecture_rag.jobs import JobRunner
from lecture_rag.llms import LLMClient, create_llm_client
from lecture_rag.mapping import TopicCatalogCache, TopicMapper
from lecture_rag.notes import LectureSummarizer
from lecture_rag.observability.base import LoggingMetricsHook, MetricsHook, NoOpMetricsHook
from lecture_rag.pipeline import LectureProcessor
from lecture_rag.prompts import PromptsLibrary
from lecture_rag.retrieval import ProblemRetrievalEngine, VectorDocumentIndex
from lecture_rag.storage import Database, SQLiteLectureRepository, SQLiteProblemRepository
from lecture_rag.themes import ThemeAggregator, ThemeExtractor
from lecture_rag.vectorstores import PgVectorStore, SQLiteVectorStore, VectorStore

logger = logging.getLogger(__name__)


@dataclass
class LectureRagApp:
    config: AppConfig
    database: Database
    problems: SQLiteProblemRepository
    lectures: SQLiteLectureRepository
    vector_store: VectorStore
    retrieval: ProblemRetrievalEngine
    topic_catalog: TopicCatalogCache
    processor: LectureProcessor
    importer: ProblemImporter
    deepmath: DeepMathIngestion
    jobs: JobRunner

    async def open(self) -> None:
        """Open pooled connections. Only the pgvector backend needs it."""
        if isinstance(self.vector_store, PgVectorStore):
            await self.vector_store.open()
            await self.vector_store.ensure_schema(self.config.embeddings.dimensions)

    async def close(self) -> None:
        await self.deepmath.aclose()
        await self.vector_store.close()
        await self.database.close()


def create_vector_store(config: AppConfig, metrics_hook: MetricsHook) -> VectorStore:
    storage = config.storage
    if storage.vector_backend == "sqlite":
        return SQLiteVectorStore(
            db_path=storage.vector_db_path,
            dimensions=config.embeddings.dimensions,
            metrics_hook=metrics_hook,
        )
    if storage.vector_backend == "pgvector":
        if not storage.pg_dsn:
            raise ValueError("storage.pg_dsn is required for the pgvector backend")
        return PgVectorStore(
            dsn=storage.pg_dsn, pool_max_size=storage.pg_pool_max_size, metrics_hook=metrics_hook
        )
    raise ValueError(f"Unknown vector backend: {storage.vector_backend}")


def create_app(
    config: AppConfig = AppConfig(),
    *,
    llm: LLMClient | None = None,
    embeddings: EmbeddingsClient | None = None,
    metrics_hook: MetricsHook | None = None,
) -> LectureRagApp:
    """Build the application. ``llm`` and ``embeddings`` override the
    clients the config would create. Without a ``metrics_hook``, metrics
    are logged when ``observability.log_metrics`` is set and dropped
    otherwise."""
    if metrics_hook is None:
        metrics_hook = (
            LoggingMetricsHook() if config.observability.log_metrics else NoOpMetricsHook()
        )
    llm = llm or create_llm_client(config.llm, metrics_hook)
    embeddings = embeddings or create_embeddings_client(config.embeddings, metrics_hook)

    database = Database(config.storage.database_path)
    problems = SQLiteProblemRepository(database)
    lectures = SQLiteLectureRepository(database)
    vector_store = create_vector_store(config, metrics_hook)

    prompts = PromptsLibrary()
    index = VectorDocumentIndex(embeddings, vector_store, namespace=config.retrieval.namespace)
    retrieval = ProblemRetrievalEngine(problems, index, config.retrieval, metrics_hook)

    topic_catalog = TopicCatalogCache(
        problems,
        ttl_seconds=config.topic_mapping.cache_ttl_seconds,
        tokenizer=config.topic_mapping.tokenizer,
        metrics_hook=metrics_hook,
    )
    processor = LectureProcessor(
        lectures,
        ThemeExtractor(
            llm,
            problems,
            prompts=prompts,
            config=config.extraction,
            metrics_hook=metrics_hook,
        ),
        ThemeAggregator(config.aggregation, metrics_hook),
        TopicMapper(topic_catalog, config.topic_mapping, metrics_hook),
        retrieval,
        summarizer=LectureSummarizer(
            llm, prompts=prompts, config=config.notes, metrics_hook=metrics_hook
        ),
        tuning_config=config.tuning,
        config=config.pipeline,
        metrics_hook=metrics_hook,
    )
    importer = ProblemImporter(problems, retrieval, config.ingestion, metrics_hook)

    logger.info(
        "lecture-rag ready: llm=%s/%s, embeddings=%s/%s, vectors=%s",
        config.llm.provider,
        config.llm.model,
        config.embeddings.provider,
        config.embeddings.model,
        config.storage.vector_backend,
    )
    return LectureRagApp(
        config=config,
        database=database,
        problems=problems,
        lectures=lectures,
        vector_store=vector_store,
        retrieval=retrieval,
        topic_catalog=topic_catalog,
        processor=processor,
        importer=importer,
        deepmath=DeepMathIngestion(importer, config.ingestion),
        jobs=JobRunner(),
    )
