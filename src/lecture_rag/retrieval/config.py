# src/lecture_rag/retrieval/config.py

from dataclasses import dataclass


@dataclass(frozen=True)
class RetrievalConfig:
    default_top_k: int = 20
    topic_match_base_score: float = 0.8
    semantic_boost_factor: float = 0.5
    # Used when a vector hit carries no numeric score.
    default_semantic_score: float = 0.5
    problem_id_prefix: str = "problem:"
    namespace: str = "problems"
    document_type: str = "problem"
