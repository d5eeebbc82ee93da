from .catalog import TopicCatalog, TopicCatalogCache, last_segment, tokenize
from .config import TopicMappingConfig
from .hints import (
    DEFAULT_HINT_RULES,
    CrossDomainPenalty,
    DomainSignal,
    HintRules,
    TokenizerRules,
    TopicBoost,
)
from .mapper import TopicMapper

__all__ = [
    "DEFAULT_HINT_RULES",
    "CrossDomainPenalty",
    "DomainSignal",
    "HintRules",
    "TokenizerRules",
    "TopicBoost",
    "TopicCatalog",
    "TopicCatalogCache",
    "TopicMapper",
    "TopicMappingConfig",
    "last_segment",
    "tokenize",
]
