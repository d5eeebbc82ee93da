# src/lecture_rag/mapping/catalog.py

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook
from lecture_rag.storage.base import TopicSource

from .hints import TokenizerRules

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

TOPIC_PATH_SEPARATOR = "->"


def tokenize(text: str, rules: TokenizerRules = TokenizerRules()) -> list[str]:
    """Lowercase alphanumeric tokens, deduplicated in first-seen order.

    Tokens shorter than three characters are kept only when allowlisted;
    stopwords are dropped.
    """
    tokens = (
        token
        for token in _NON_ALNUM.split(text.lower())
        if (len(token) >= 3 or token in rules.short_tokens) and token not in rules.stopwords
    )
    return list(dict.fromkeys(tokens))


def last_segment(topic: str) -> str:
    return topic.lower().split(TOPIC_PATH_SEPARATOR)[-1].strip()


@dataclass(frozen=True)
class TopicCatalog:
    topics: tuple[str, ...]
    # token -> topics containing it, in catalog order
    token_index: dict[str, tuple[str, ...]]
    loaded_at: float

    @classmethod
    def build(
        cls, topics: list[str], loaded_at: float, rules: TokenizerRules = TokenizerRules()
    ) -> "TopicCatalog":
        index: dict[str, list[str]] = {}
        for topic in topics:
            for token in tokenize(topic, rules):
                index.setdefault(token, []).append(topic)
        return cls(
            topics=tuple(topics),
            token_index={token: tuple(found) for token, found in index.items()},
            loaded_at=loaded_at,
        )


class TopicCatalogCache:
    """TTL cache around the corpus's distinct topics.

    Only one rebuild runs at a time. While it runs, callers holding a stale
    catalog get the stale one instead of waiting.
    """

    def __init__(
        self,
        repository: TopicSource,
        *,
        ttl_seconds: float = 600.0,
        tokenizer: TokenizerRules = TokenizerRules(),
        clock: Callable[[], float] = monotonic,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._repository = repository
        self._ttl_seconds = ttl_seconds
        self._tokenizer = tokenizer
        self._clock = clock
        self.metrics_hook = metrics_hook
        self._catalog: TopicCatalog | None = None
        self._lock = asyncio.Lock()

    def _is_fresh(self, catalog: TopicCatalog | None) -> bool:
        return catalog is not None and self._clock() - catalog.loaded_at < self._ttl_seconds

    async def get(self) -> TopicCatalog:
        catalog = self._catalog
        if self._is_fresh(catalog):
            return catalog
        if catalog is not None and self._lock.locked():
            return catalog

        async with self._lock:
            catalog = self._catalog
            if self._is_fresh(catalog):
                return catalog

            topics = await self._repository.find_all_topics()
            catalog = TopicCatalog.build(topics, self._clock(), self._tokenizer)
            self._catalog = catalog

        logger.info(
            "Topic catalog rebuilt: %d topics, %d tokens",
            len(catalog.topics),
            len(catalog.token_index),
        )
        self.metrics_hook.increment(names.TOPIC_CATALOG_REBUILDS_TOTAL)
        self.metrics_hook.record_gauge(names.TOPIC_CATALOG_SIZE, len(catalog.topics))
        return catalog

    def invalidate(self) -> None:
        self._catalog = None
