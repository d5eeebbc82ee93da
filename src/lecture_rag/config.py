# src/lecture_rag/config.py

"""Application configuration.

Each component owns an immutable config dataclass with explicit defaults;
components never read the environment themselves. ``load_config`` builds an
:class:`AppConfig` from a YAML file whose top-level keys are the section
names below.
"""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from lecture_rag.embeddings.config import EmbeddingsConfig
from lecture_rag.ingestion.config import IngestionConfig
from lecture_rag.llms.config import LLMConfig
from lecture_rag.mapping.config import TopicMappingConfig
from lecture_rag.mapping.hints import HintRules, TokenizerRules
from lecture_rag.notes.config import NotesConfig
from lecture_rag.retrieval.config import RetrievalConfig
from lecture_rag.themes.config import AggregationConfig, ExtractionConfig
from lecture_rag.tuning.config import TuningConfig


@dataclass(frozen=True)
class PipelineConfig:
    # Global switch; the tuned settings can still disable chunk-level mode.
    chunk_level_enabled: bool = True
    # Extra LLM call per lecture for Markdown study notes.
    structured_notes_enabled: bool = False


@dataclass(frozen=True)
class ObservabilityConfig:
    # Only used when create_app gets no metrics hook of its own.
    log_metrics: bool = False


@dataclass(frozen=True)
class StorageConfig:
    database_path: str = "lecture_rag.db"
    vector_backend: Literal["sqlite", "pgvector"] = "sqlite"
    vector_db_path: str = "lecture_rag_vectors.db"
    # pgvector only
    pg_dsn: str | None = None
    pg_pool_max_size: int = 10


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    embeddings: EmbeddingsConfig = field(default_factory=EmbeddingsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    tuning: TuningConfig = field(default_factory=TuningConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    notes: NotesConfig = field(default_factory=NotesConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    topic_mapping: TopicMappingConfig = field(default_factory=TopicMappingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


def _build_section(name: str, cls: type, data: Any) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")

    unknown = set(data) - {f.name for f in dataclasses.fields(cls)}
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {sorted(unknown)}")

    values = dict(data)
    if cls is TopicMappingConfig:
        if "rules" in values:
            values["rules"] = HintRules.from_dict(values["rules"])
        if "tokenizer" in values:
            values["tokenizer"] = TokenizerRules(
                **{key: frozenset(tokens) for key, tokens in values["tokenizer"].items()}
            )
    if cls is ExtractionConfig and "fallback_topics" in values:
        values["fallback_topics"] = tuple(values["fallback_topics"])
    return cls(**values)


def load_config(path: str | Path) -> AppConfig:
    """Read an :class:`AppConfig` from YAML. Missing sections keep defaults.

    Raises:
        ValueError: On unknown sections or keys.
    """
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a mapping at the top level")

    sections = {f.name: f for f in dataclasses.fields(AppConfig)}
    unknown = set(raw) - set(sections)
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    return AppConfig(**{name: _build_section(name, f.type, raw.get(name)) for name, f in sections.items()})
