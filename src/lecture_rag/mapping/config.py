# src/lecture_rag/mapping/config.py

from dataclasses import dataclass, field

from .hints import DEFAULT_HINT_RULES, HintRules, TokenizerRules


@dataclass(frozen=True)
class TopicMappingConfig:
    cache_ttl_seconds: float = 600.0
    max_candidates: int = 5000
    min_score: int = 3
    token_hit_score: int = 2
    name_substring_score: int = 8
    min_name_length: int = 4
    last_segment_score: int = 3
    rules: HintRules = DEFAULT_HINT_RULES
    tokenizer: TokenizerRules = field(default_factory=TokenizerRules)
