# Application
from .app import LectureRagApp, create_app

# Chunking
from .chunking import TextChunk, chunk_semantically, chunk_text

# Configuration
from .config import AppConfig, load_config

# Errors
from .errors import (
    IngestionError,
    LectureNotFoundError,
    LectureRagError,
    LectureStateError,
    NotesGenerationError,
    RetrievalError,
    ThemeExtractionError,
    ThemeParseError,
)

# Jobs
from .jobs import JobRunner, JobState, JobStatus, StartResult

# Topic mapping
from .mapping import HintRules, TopicCatalogCache, TopicMapper

# Study notes
from .notes import LectureSummarizer, NotesConfig

# Observability
from .observability import LoggingMetricsHook, MetricsHook, NoOpMetricsHook

# Pipeline
from .pipeline import LectureProcessor, ProcessingResult

# Retrieval
from .retrieval import (
    Page,
    PageRequest,
    ProblemRetrievalEngine,
    ProblemSearchResult,
    VectorDocumentIndex,
)

# Themes
from .themes import ExtractedTheme, ThemeAggregator, ThemeExtractor

# Tuning
from .tuning import TunedSettings, TuningRequest, tune

__all__ = [
    # Application
    "LectureRagApp",
    "create_app",
    # Chunking
    "TextChunk",
    "chunk_semantically",
    "chunk_text",
    # Configuration
    "AppConfig",
    "load_config",
    # Errors
    "IngestionError",
    "LectureNotFoundError",
    "LectureRagError",
    "LectureStateError",
    "NotesGenerationError",
    "RetrievalError",
    "ThemeExtractionError",
    "ThemeParseError",
    # Jobs
    "JobRunner",
    "JobState",
    "JobStatus",
    "StartResult",
    # Topic mapping
    "HintRules",
    "TopicCatalogCache",
    "TopicMapper",
    # Study notes
    "LectureSummarizer",
    "NotesConfig",
    # Observability
    "LoggingMetricsHook",
    "MetricsHook",
    "NoOpMetricsHook",
    # Pipeline
    "LectureProcessor",
    "ProcessingResult",
    # Retrieval
    "Page",
    "PageRequest",
    "ProblemRetrievalEngine",
    "ProblemSearchResult",
    "VectorDocumentIndex",
    # Themes
    "ExtractedTheme",
    "ThemeAggregator",
    "ThemeExtractor",
    # Tuning
    "TunedSettings",
    "TuningRequest",
    "tune",
]
