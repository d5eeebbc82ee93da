# src/lecture_rag/retrieval/engine.py

import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Collection, Sequence
from dataclasses import replace
from time import monotonic
from typing import TypeVar

from lecture_rag.errors import RetrievalError
from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook
from lecture_rag.storage.base import ProblemRepository
from lecture_rag.storage.models import Problem
from lecture_rag.themes.models import ExtractedTheme

from .config import RetrievalConfig
from .index import SCORE_KEY, Document, DocumentIndex
from .models import Page, PageRequest, ProblemSearchResult, clamp_score

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_search_query(theme: ExtractedTheme) -> str:
    """Theme text for the vector query, anchored on the mapped topic so
    generic words like "vector" do not drift into other domains."""
    parts = []
    if theme.mapped_topic and theme.mapped_topic.strip():
        parts.append(f"Topic: {theme.mapped_topic}")
    parts.append(theme.name)
    if theme.keywords:
        parts.append(" ".join(theme.keywords))
    if theme.summary.strip():
        parts.append(theme.summary)
    return ". ".join(parts)


def build_problem_content(problem: Problem) -> str:
    parts = [f"Topic: {problem.topic}"]
    if problem.subtopic:
        parts.append(f"Subtopic: {problem.subtopic}")
    parts.append(f"Problem: {problem.statement}")
    return "\n".join(parts)


class ProblemRetrievalEngine:
    """Ranks corpus problems for a set of lecture themes.

    ``search_by_themes`` is vector search only. ``hybrid_search`` first
    takes every problem whose topic is one of the mapped topics at a fixed
    base score, then adds or boosts vector hits. Every score returned is
    clamped to [0, 1].

    When any theme carries a mapped topic, vector hits are filtered: a
    theme with a mapped topic only yields problems of exactly that topic,
    and a theme without one only yields problems within the union of the
    mapped topics.

    Failures of the vector store or the repository are raised as
    :class:`RetrievalError`.
    """

    def __init__(
        self,
        problems: ProblemRepository,
        index: DocumentIndex,
        config: RetrievalConfig = RetrievalConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._problems = problems
        self._index = index
        self._config = config
        self.metrics_hook = metrics_hook

    async def find_by_topic(self, topic: str, page: PageRequest = PageRequest()) -> Page[Problem]:
        return await self._call("Topic lookup", self._problems.find_by_topic(topic, page))

    async def find_by_topics(
        self, topics: Sequence[str], page: PageRequest = PageRequest()
    ) -> Page[Problem]:
        if not topics:
            return Page.empty(page)
        return await self._call("Topic lookup", self._problems.find_by_topics(topics, page))

    async def search_by_themes(
        self,
        themes: Sequence[ExtractedTheme],
        top_k: int | None = None,
        page: PageRequest = PageRequest(),
    ) -> Page[ProblemSearchResult]:
        if not themes:
            return Page.empty(page)

        start = monotonic()
        allowed = _mapped_topics(themes)
        results: list[ProblemSearchResult] = []
        seen: set[str] = set()

        for theme in themes:
            async for problem, semantic_score in self._semantic_hits(theme, allowed, top_k, seen):
                # first accepted hit wins; later themes never re-score it
                seen.add(problem.id)
                results.append(
                    ProblemSearchResult(
                        problem=problem,
                        score=clamp_score(semantic_score * theme.confidence),
                        matched_theme=theme.name,
                    )
                )

        results.sort(key=lambda result: result.score, reverse=True)
        return self._finish("semantic", start, results, page)

    async def hybrid_search(
        self,
        themes: Sequence[ExtractedTheme],
        top_k: int | None = None,
        page: PageRequest = PageRequest(),
    ) -> Page[ProblemSearchResult]:
        if not themes:
            return Page.empty(page)

        start = monotonic()
        allowed = _mapped_topics(themes)
        results: dict[str, ProblemSearchResult] = {}

        if allowed:
            base_score = clamp_score(self._config.topic_match_base_score)
            topic_problems = await self._call(
                "Topic lookup", self._problems.find_all_by_topics(list(allowed))
            )
            for problem in topic_problems:
                matched = next((t.name for t in themes if t.mapped_topic == problem.topic), None)
                results[problem.id] = ProblemSearchResult(
                    problem=problem, score=base_score, matched_theme=matched
                )
        topic_matched = set(results)
        logger.debug("Topic pass matched %d problems", len(topic_matched))

        for theme in themes:
            async for problem, semantic_score in self._semantic_hits(theme, allowed, top_k):
                existing = results.get(problem.id)
                if existing is None:
                    results[problem.id] = ProblemSearchResult(
                        problem=problem,
                        score=clamp_score(semantic_score * theme.confidence),
                        matched_theme=theme.name,
                    )
                elif problem.id in topic_matched:
                    results[problem.id] = replace(
                        existing,
                        score=clamp_score(
                            existing.score + semantic_score * self._config.semantic_boost_factor
                        ),
                    )

        ranked = sorted(results.values(), key=lambda result: result.score, reverse=True)
        return self._finish("hybrid", start, ranked, page)

    async def index_problem(self, problem: Problem) -> None:
        await self.index_problems([problem])

    async def index_problems(self, problems: Sequence[Problem]) -> int:
        """Write one document per problem, keyed by the bare problem id."""
        documents = [
            Document(
                id=problem.id,
                content=build_problem_content(problem),
                metadata={
                    "source_id": problem.source_id,
                    "topic": problem.topic,
                    "difficulty": problem.difficulty or 0,
                    "type": self._config.document_type,
                },
            )
            for problem in problems
        ]
        if not documents:
            return 0

        await self._call("Indexing", self._index.add_documents(documents))
        self.metrics_hook.increment(names.RETRIEVAL_INDEXED_TOTAL, len(documents))
        logger.info("Indexed %d problems", len(documents))
        return len(documents)

    async def clear_index(self) -> int:
        """Remove every indexed problem document. Stored problems stay."""
        deleted = await self._call("Clearing index", self._index.clear())
        logger.info("Cleared %d problem documents", deleted)
        return deleted

    async def indexed_count(self) -> int:
        return await self._call("Index count", self._index.count())

    def resolve_problem_id(self, document_id: str | None) -> str | None:
        """Document id to problem id, with or without the id prefix.

        Anything that is not a UUID resolves to ``None``.
        """
        if not document_id or not document_id.strip():
            return None
        raw = document_id.removeprefix(self._config.problem_id_prefix)
        try:
            return str(uuid.UUID(raw))
        except ValueError:
            return None

    async def _semantic_hits(
        self,
        theme: ExtractedTheme,
        allowed: Collection[str],
        top_k: int | None,
        skip: Collection[str] = (),
    ) -> AsyncIterator[tuple[Problem, float]]:
        query = build_search_query(theme)
        documents = await self._call(
            "Vector search",
            self._index.similarity_search(query, top_k or self._config.default_top_k),
        )
        for document in documents:
            problem_id = self.resolve_problem_id(document.id)
            if problem_id is None or problem_id in skip:
                continue
            problem = await self._call("Problem lookup", self._problems.find_by_id(problem_id))
            if problem is None:
                logger.debug("Skipping hit %s with no stored problem", document.id)
                continue
            if allowed:
                required = theme.mapped_topic
                if required is not None and problem.topic != required:
                    continue
                if required is None and problem.topic not in allowed:
                    continue
            yield problem, self._semantic_score(document)

    def _semantic_score(self, document: Document) -> float:
        score = document.metadata.get(SCORE_KEY)
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            return self._config.default_semantic_score
        return float(score)

    async def _call(self, what: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except Exception as exc:
            raise RetrievalError(f"{what} failed: {exc}") from exc

    def _finish(
        self,
        mode: str,
        start: float,
        ranked: list[ProblemSearchResult],
        page: PageRequest,
    ) -> Page[ProblemSearchResult]:
        elapsed_ms = 1000 * (monotonic() - start)
        labels = {"mode": mode}
        self.metrics_hook.record_latency(names.RETRIEVAL_SEARCH_DURATION, elapsed_ms, labels)
        self.metrics_hook.increment(names.RETRIEVAL_RESULTS_TOTAL, len(ranked), labels)
        logger.info("%s search ranked %d problems in %.0f ms", mode.capitalize(), len(ranked), elapsed_ms)
        return Page.slice(ranked, page)


def _mapped_topics(themes: Sequence[ExtractedTheme]) -> dict[str, None]:
    # dict keeps first-seen order for the topic query
    return dict.fromkeys(t.mapped_topic for t in themes if t.mapped_topic)
