# src/lecture_rag/tuning/tuning.py

"""Adaptive chunking and aggregation settings.

Short transcripts skip chunk-level extraction entirely. Longer ones are
tuned by linear interpolation over the granularity dial: level 1 gives few
long chunks and loose thresholds, level 10 many short chunks and more themes
per chunk.
"""

import logging
import math
from dataclasses import dataclass

from .config import TuningConfig

logger = logging.getLogger(__name__)

MIN_GRANULARITY = 1
MAX_GRANULARITY = 10


@dataclass(frozen=True)
class TuningRequest:
    granularity_level: int | None = None
    lecture_minutes: float | None = None


@dataclass(frozen=True)
class TunedSettings:
    chunk_level_enabled: bool
    chunk_size_words: int
    max_themes_per_chunk: int
    max_final_themes: int
    min_chunk_occurrences: int
    min_occurrence_ratio: float


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value, low, high):
    return max(low, min(high, value))


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def tune(
    transcript: str,
    request: TuningRequest | None = None,
    config: TuningConfig = TuningConfig(),
) -> TunedSettings:
    request = request or TuningRequest()
    words = len(transcript.split())
    level = _clamp(
        request.granularity_level
        if request.granularity_level is not None
        else config.default_granularity,
        MIN_GRANULARITY,
        MAX_GRANULARITY,
    )

    if request.lecture_minutes is not None and request.lecture_minutes > 0:
        minutes = max(request.lecture_minutes, config.min_lecture_minutes)
    else:
        minutes = max(math.ceil(words / config.words_per_minute), config.min_lecture_minutes)

    length_cap = _clamp(
        round_half_up(minutes / config.minutes_per_extra_theme) + 1,
        config.min_final_themes,
        config.max_final_themes,
    )
    if level <= 3:
        adjustment = config.coarse_theme_adjustment
    elif level >= 8:
        adjustment = config.fine_theme_adjustment
    else:
        adjustment = 0
    max_final_themes = _clamp(
        length_cap + adjustment, config.min_final_themes, config.max_final_themes
    )

    if words < config.short_transcript_words:
        settings = TunedSettings(
            chunk_level_enabled=False,
            chunk_size_words=config.short_chunk_size_words,
            max_themes_per_chunk=config.short_max_themes_per_chunk,
            max_final_themes=min(max_final_themes, config.short_max_final_themes),
            min_chunk_occurrences=config.short_min_chunk_occurrences,
            min_occurrence_ratio=config.short_min_occurrence_ratio,
        )
        logger.debug("Short transcript (%d words), chunk-level extraction off: %s", words, settings)
        return settings

    t = _clamp((level - 1) / 9, 0.0, 1.0)

    chunk_minutes = _lerp(config.chunk_minutes_coarse, config.chunk_minutes_fine, t)
    target_chunks = _clamp(
        round_half_up(minutes / chunk_minutes), config.min_chunk_count, config.max_chunk_count
    )
    chunk_size_words = _clamp(
        round_half_up(words / target_chunks), config.min_chunk_words, config.max_chunk_words
    )

    settings = TunedSettings(
        chunk_level_enabled=True,
        chunk_size_words=chunk_size_words,
        max_themes_per_chunk=_clamp(
            round_half_up(
                _lerp(config.themes_per_chunk_coarse, config.themes_per_chunk_fine, t)
            ),
            config.min_themes_per_chunk,
            config.max_themes_per_chunk,
        ),
        max_final_themes=max_final_themes,
        min_chunk_occurrences=_clamp(
            round_half_up(
                _lerp(config.chunk_occurrences_coarse, config.chunk_occurrences_fine, t)
            ),
            config.min_chunk_occurrences,
            config.max_chunk_occurrences,
        ),
        min_occurrence_ratio=_clamp(
            _lerp(config.occurrence_ratio_coarse, config.occurrence_ratio_fine, t),
            config.min_occurrence_ratio,
            config.max_occurrence_ratio,
        ),
    )
    logger.info(
        "Tuned %d words (%.0f min, granularity %d): %s", words, minutes, level, settings
    )
    return settings
