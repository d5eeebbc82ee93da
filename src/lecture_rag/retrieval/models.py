# src/lecture_rag/retrieval/models.py

from dataclasses import dataclass

from lecture_rag.storage.models import Page, PageRequest, Problem

__all__ = ["Page", "PageRequest", "ProblemSearchResult", "clamp_score"]


def clamp_score(score: float) -> float:
    """Scores are ranking signals; combined signals must not exceed 1."""
    return max(0.0, min(1.0, score))


@dataclass(frozen=True)
class ProblemSearchResult:
    problem: Problem
    # Always within [0, 1].
    score: float
    matched_theme: str | None = None

    @property
    def problem_id(self) -> str:
        return self.problem.id
