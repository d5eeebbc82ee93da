# src/lecture_rag/themes/aggregation.py

import logging
import math
from collections import Counter
from collections.abc import Sequence

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook

from .config import AggregationConfig
from .models import ExtractedTheme

logger = logging.getLogger(__name__)


def normalize_theme_name(name: str) -> str:
    return " ".join(name.lower().split())


def min_occurrence_threshold(total_chunks: int, min_occurrences: int, ratio: float) -> int:
    """``max(min_occurrences, ceil(total_chunks * ratio))``."""
    if total_chunks <= 0:
        return min_occurrences
    # 1e-9 keeps e.g. 10 * 0.3 == 3.0000000000000004 from rounding up to 4
    return max(min_occurrences, math.ceil(total_chunks * ratio - 1e-9))


class ThemeAggregator:
    """Merges per-chunk theme lists into lecture-level themes.

    A theme survives only if it shows up in enough distinct chunks; repeats
    inside one chunk count once.
    """

    def __init__(
        self,
        config: AggregationConfig = AggregationConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._config = config
        self.metrics_hook = metrics_hook

    def aggregate_themes(
        self,
        chunk_themes: Sequence[Sequence[ExtractedTheme]],
        *,
        min_chunk_occurrences: int | None = None,
        min_occurrence_ratio: float | None = None,
        max_final_themes: int | None = None,
    ) -> list[ExtractedTheme]:
        if not chunk_themes:
            return []

        min_occurrences = (
            self._config.min_chunk_occurrences
            if min_chunk_occurrences is None
            else min_chunk_occurrences
        )
        ratio = (
            self._config.min_occurrence_ratio
            if min_occurrence_ratio is None
            else min_occurrence_ratio
        )
        limit = self._config.max_final_themes if max_final_themes is None else max_final_themes
        threshold = min_occurrence_threshold(len(chunk_themes), min_occurrences, ratio)

        groups: dict[str, list[ExtractedTheme]] = {}
        for themes in chunk_themes:
            seen_in_chunk: set[str] = set()
            for theme in themes:
                key = normalize_theme_name(theme.name)
                if not key or key in seen_in_chunk:
                    continue
                seen_in_chunk.add(key)
                groups.setdefault(key, []).append(theme)

        merged = []
        for key, occurrences in groups.items():
            if len(occurrences) < threshold:
                logger.debug("Dropping theme '%s' with %d occurrences", key, len(occurrences))
                self.metrics_hook.increment(names.AGGREGATION_THEMES_DROPPED)
                continue
            merged.append(self._merge(occurrences))

        merged.sort(key=lambda theme: theme.confidence, reverse=True)
        result = merged[:limit]
        logger.info(
            "Aggregated %d theme groups from %d chunks into %d themes (min occurrences %d)",
            len(groups),
            len(chunk_themes),
            len(result),
            threshold,
        )
        return result

    def _merge(self, occurrences: list[ExtractedTheme]) -> ExtractedTheme:
        # most_common keeps first-seen order among equal counts
        name = Counter(t.name for t in occurrences).most_common(1)[0][0]

        keywords: list[str] = []
        for theme in occurrences:
            for keyword in theme.keywords:
                lowered = keyword.lower()
                if lowered not in keywords:
                    keywords.append(lowered)

        summary = ""
        for theme in occurrences:
            if len(theme.summary) > len(summary):
                summary = theme.summary

        topics = Counter(t.mapped_topic for t in occurrences if t.mapped_topic)
        mapped_topic = topics.most_common(1)[0][0] if topics else None

        return ExtractedTheme(
            name=name,
            confidence=sum(t.confidence for t in occurrences) / len(occurrences),
            summary=summary,
            keywords=tuple(keywords[: self._config.max_keywords]),
            mapped_topic=mapped_topic,
        )
