from .config import RetrievalConfig
from .engine import ProblemRetrievalEngine, build_problem_content, build_search_query
from .index import Document, DocumentIndex, VectorDocumentIndex
from .models import Page, PageRequest, ProblemSearchResult, clamp_score

__all__ = [
    "Document",
    "DocumentIndex",
    "Page",
    "PageRequest",
    "ProblemRetrievalEngine",
    "ProblemSearchResult",
    "RetrievalConfig",
    "VectorDocumentIndex",
    "build_problem_content",
    "build_search_query",
    "clamp_score",
]
