from .config import IngestionConfig
from .deepmath import JOB_NAME, DeepMathIngestion, parse_row, split_topic
from .importer import (
    REINDEX_JOB_NAME,
    SAMPLE_PROBLEMS,
    ImportResult,
    ProblemImporter,
    parse_level,
    parse_math_problem,
)

__all__ = [
    "JOB_NAME",
    "REINDEX_JOB_NAME",
    "SAMPLE_PROBLEMS",
    "DeepMathIngestion",
    "ImportResult",
    "IngestionConfig",
    "ProblemImporter",
    "parse_level",
    "parse_math_problem",
    "parse_row",
    "split_topic",
]
