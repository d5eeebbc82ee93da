# src/lecture_rag/mapping/mapper.py

import logging
from collections.abc import Collection, Sequence
from dataclasses import replace

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook
from lecture_rag.themes.models import ExtractedTheme

from .catalog import TopicCatalog, TopicCatalogCache, last_segment, tokenize
from .config import TopicMappingConfig

logger = logging.getLogger(__name__)


class TopicMapper:
    """Maps free-form themes onto catalog topics with a lexical score.

    Per candidate topic: token hits, domain boosts and penalties from
    ``config.rules``, a bonus when the theme name is a substring of the
    topic, and a bonus per token equal to the topic's last path segment.
    The first candidate with the highest score wins if it reaches
    ``config.min_score``.
    """

    def __init__(
        self,
        catalog: TopicCatalogCache,
        config: TopicMappingConfig = TopicMappingConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._catalog = catalog
        self._config = config
        self.metrics_hook = metrics_hook

    async def map_themes(self, themes: Sequence[ExtractedTheme]) -> list[ExtractedTheme]:
        if not themes:
            return list(themes)

        catalog = await self._catalog.get()
        if not catalog.topics:
            logger.info("Topic catalog is empty, %d themes left unmapped", len(themes))
            return list(themes)

        mapped = [replace(theme, mapped_topic=self.map_theme(theme, catalog)) for theme in themes]

        hits = sum(1 for theme in mapped if theme.mapped_topic is not None)
        self.metrics_hook.increment(names.TOPIC_MAPPING_MAPPED_TOTAL, hits)
        self.metrics_hook.increment(names.TOPIC_MAPPING_UNMAPPED_TOTAL, len(mapped) - hits)
        logger.info("Mapped %d of %d themes to catalog topics", hits, len(mapped))
        return mapped

    def map_theme(self, theme: ExtractedTheme, catalog: TopicCatalog) -> str | None:
        config = self._config
        tokens = tokenize(
            f"{theme.name} {' '.join(theme.keywords)} {theme.summary}", config.tokenizer
        )
        if not tokens:
            return None

        scores: dict[str, int] = {}
        for token in tokens:
            for topic in catalog.token_index.get(token, ()):
                scores[topic] = scores.get(topic, 0) + config.token_hit_score

        limit = max(config.max_candidates, 1)
        if scores:
            candidates = sorted(scores, key=scores.__getitem__, reverse=True)[:limit]
        else:
            candidates = list(catalog.topics[:limit])

        active = {signal.name for signal in config.rules.signals if signal.active(tokens)}
        name_lower = theme.name.strip().lower()

        best_topic: str | None = None
        best_score: int | None = None
        for topic in candidates:
            topic_lower = topic.lower()
            score = scores.get(topic, 0) + self._domain_adjustment(topic_lower, active)

            if len(name_lower) >= config.min_name_length and name_lower in topic_lower:
                score += config.name_substring_score

            segment = last_segment(topic)
            score += config.last_segment_score * sum(1 for token in tokens if token == segment)

            if best_score is None or score > best_score:
                best_topic, best_score = topic, score

        logger.debug(
            "Theme '%s' -> %s (score %s, signals %s)", theme.name, best_topic, best_score, sorted(active)
        )
        if best_score is not None and best_score >= config.min_score:
            return best_topic
        return None

    def _domain_adjustment(self, topic_lower: str, active: Collection[str]) -> int:
        rules = self._config.rules
        delta = 0
        for boost in rules.boosts:
            if boost.signal in active and any(marker in topic_lower for marker in boost.markers):
                delta += boost.delta
        for penalty in rules.penalties:
            if (
                penalty.present in active
                and penalty.absent not in active
                and rules.signal(penalty.target).owns(topic_lower)
            ):
                delta += penalty.delta
        return delta
