from .aggregation import ThemeAggregator, min_occurrence_threshold, normalize_theme_name
from .config import AggregationConfig, ExtractionConfig, FailurePolicy
from .extractor import ThemeExtractor, build_topics_context, truncate_transcript
from .models import ExtractedTheme
from .parsing import ThemePayload, parse_themes, strip_code_fences

__all__ = [
    "AggregationConfig",
    "ExtractedTheme",
    "ExtractionConfig",
    "FailurePolicy",
    "ThemeAggregator",
    "ThemeExtractor",
    "ThemePayload",
    "build_topics_context",
    "min_occurrence_threshold",
    "normalize_theme_name",
    "parse_themes",
    "strip_code_fences",
    "truncate_transcript",
]
