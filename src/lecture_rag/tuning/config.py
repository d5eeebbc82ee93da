# src/lecture_rag/tuning/config.py

from dataclasses import dataclass


@dataclass(frozen=True)
class TuningConfig:
    """Endpoints of the granularity interpolation.

    ``*_coarse`` applies at granularity 1 and ``*_fine`` at 10; levels in
    between are linear.
    """

    default_granularity: int = 5
    words_per_minute: int = 150
    min_lecture_minutes: int = 5
    minutes_per_extra_theme: float = 25.0
    min_final_themes: int = 2
    max_final_themes: int = 12
    coarse_theme_adjustment: int = -1  # levels <= 3
    fine_theme_adjustment: int = 1  # levels >= 8

    short_transcript_words: int = 1200
    short_chunk_size_words: int = 2000
    short_max_themes_per_chunk: int = 3
    short_max_final_themes: int = 6
    short_min_chunk_occurrences: int = 2
    short_min_occurrence_ratio: float = 0.20

    chunk_minutes_coarse: float = 15.0
    chunk_minutes_fine: float = 4.0
    min_chunk_count: int = 3
    max_chunk_count: int = 30
    min_chunk_words: int = 600
    max_chunk_words: int = 2500

    occurrence_ratio_coarse: float = 0.26
    occurrence_ratio_fine: float = 0.14
    min_occurrence_ratio: float = 0.10
    max_occurrence_ratio: float = 0.35

    chunk_occurrences_coarse: float = 4.0
    chunk_occurrences_fine: float = 2.0
    min_chunk_occurrences: int = 2
    max_chunk_occurrences: int = 6

    themes_per_chunk_coarse: float = 2.0
    themes_per_chunk_fine: float = 4.0
    min_themes_per_chunk: int = 2
    max_themes_per_chunk: int = 6
