from .base import VectorStore
from .pgvectorstore import PgVectorStore
from .sqlitevectorstore import SQLiteVectorStore
from .types import QueryResult, VectorItem

__all__ = [
    "PgVectorStore",
    "SQLiteVectorStore",
    "QueryResult",
    "VectorItem",
    "VectorStore",
]
