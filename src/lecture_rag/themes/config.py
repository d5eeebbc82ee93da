# src/lecture_rag/themes/config.py

from dataclasses import dataclass
from typing import Literal

# "strict": unusable LLM output raises ThemeParseError.
# "best_effort": it is logged and the chunk yields no themes.
FailurePolicy = Literal["strict", "best_effort"]


@dataclass(frozen=True)
class ExtractionConfig:
    max_topics_in_prompt: int = 120
    max_transcript_chars: int = 12000
    min_transcript_chars: int = 500
    head_ratio: float = 0.65
    min_head_tail_chars: int = 200
    max_themes: int = 8
    max_themes_per_chunk: int = 5
    temperature: float = 0.0
    failure_policy: FailurePolicy = "strict"
    fallback_topics: tuple[str, ...] = (
        "Algebra",
        "Geometry",
        "Number Theory",
        "Combinatorics",
        "Probability",
        "Calculus",
        "Linear Algebra",
        "Trigonometry",
    )


@dataclass(frozen=True)
class AggregationConfig:
    min_chunk_occurrences: int = 3
    min_occurrence_ratio: float = 0.10
    max_final_themes: int = 12
    max_keywords: int = 10
