"""SQLite vector store on the sqlite-vec extension."""

import asyncio
import json
from collections.abc import Iterable
from pathlib import Path
from time import monotonic
from typing import Any

import apsw
import sqlite_vec

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook, timed

from .base import VectorStore
from .types import QueryResult, VectorItem

DEFAULT_NAMESPACE = "__global__"
_LABELS = {"backend": "sqlite"}


class SQLiteVectorStore(VectorStore):
    """Vector store backed by a sqlite-vec ``vec0`` virtual table.

    Cosine distance, namespace as partition key, metadata kept as a JSON
    auxiliary column and filtered after the KNN query. Requires ``apsw``
    for extension loading.

    Example:
        >>> store = SQLiteVectorStore(db_path="vectors.db", dimensions=768)
        >>> await store.upsert(namespace="problems", items=[
        ...     VectorItem(id="1", vector=[...], metadata={"topic": "Algebra"})
        ... ])
        >>> results = await store.query(namespace="problems", vector=[...], top_k=5)
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        dimensions: int = 768,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.metrics_hook = metrics_hook
        self._db_path = str(db_path)
        self._dimensions = dimensions
        self._conn: apsw.Connection | None = None

    def _get_connection(self) -> apsw.Connection:
        if self._conn is None:
            conn = apsw.Connection(self._db_path)
            conn.enableloadextension(True)
            conn.loadextension(sqlite_vec.loadable_path())
            conn.enableloadextension(False)
            # composite_id = "<namespace>:<item_id>" keeps ids unique per namespace
            conn.execute(
                f"""
                CREATE VIRTUAL TABLE IF NOT EXISTS vec_items USING vec0(
                    composite_id TEXT PRIMARY KEY,
                    namespace TEXT PARTITION KEY,
                    embedding float[{self._dimensions}] distance_metric=cosine,
                    +metadata TEXT,
                    +item_id TEXT
                )
                """
            )
            self._conn = conn
        return self._conn

    @staticmethod
    def _key(namespace: str, item_id: str) -> str:
        return f"{namespace}:{item_id}"

    async def close(self) -> None:
        if self._conn:
            await asyncio.to_thread(self._conn.close)
            self._conn = None

    async def upsert(
        self, *, namespace: str = DEFAULT_NAMESPACE, items: Iterable[VectorItem]
    ) -> None:
        """Insert or replace vectors in one transaction.

        vec0 has no ON CONFLICT, so existing rows are deleted first.
        """
        start = monotonic()
        items_list = list(items)
        if not items_list:
            return

        def _upsert() -> None:
            conn = self._get_connection()
            keys = [self._key(namespace, item.id) for item in items_list]
            placeholders = ",".join("?" * len(keys))
            with conn:
                conn.execute(
                    f"DELETE FROM vec_items WHERE namespace = ? AND composite_id IN ({placeholders})",
                    (namespace, *keys),
                )
                conn.executemany(
                    """
                    INSERT INTO vec_items(composite_id, namespace, embedding, metadata, item_id)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            key,
                            namespace,
                            sqlite_vec.serialize_float32(item.vector),
                            json.dumps(dict(item.metadata)),
                            item.id,
                        )
                        for key, item in zip(keys, items_list)
                    ],
                )

        await asyncio.to_thread(_upsert)

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.VECTORSTORE_UPSERT_DURATION, elapsed_ms, _LABELS)
        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "upsert"}
        )

    async def query(
        self,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        vector: list[float],
        top_k: int,
        filters: dict[str, Any] | None = None,
    ) -> list[QueryResult]:
        """KNN query, most similar first.

        Filters are exact metadata matches applied after the KNN step, so
        ``top_k * 3`` neighbours are fetched when filtering.
        """
        start = monotonic()
        if top_k < 1:
            raise ValueError("top_k must be at least 1")

        def _query() -> list[QueryResult]:
            conn = self._get_connection()
            fetch_k = top_k * 3 if filters else top_k
            rows = conn.execute(
                """
                SELECT item_id, distance, metadata
                FROM vec_items
                WHERE embedding MATCH ? AND k = ? AND namespace = ?
                ORDER BY distance
                """,
                (sqlite_vec.serialize_float32(vector), fetch_k, namespace),
            )

            results: list[QueryResult] = []
            for item_id, distance, metadata_json in rows:
                metadata = json.loads(metadata_json)
                if filters and not all(metadata.get(k) == v for k, v in filters.items()):
                    continue
                # cosine distance is in [0, 2]
                results.append(
                    QueryResult(id=item_id, score=1.0 - distance / 2.0, metadata=metadata)
                )
                if len(results) >= top_k:
                    break
            return results

        results = await asyncio.to_thread(_query)

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.VECTORSTORE_QUERY_DURATION, elapsed_ms, _LABELS)
        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "query"}
        )
        return results

    async def delete(
        self,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        ids: Iterable[str] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> int:
        start = monotonic()
        id_set = set(ids) if ids is not None else None
        if not id_set and not filters:
            raise ValueError("delete requires ids or filters")

        def _delete() -> int:
            conn = self._get_connection()
            rows = conn.execute(
                "SELECT item_id, metadata FROM vec_items WHERE namespace = ?",
                (namespace,),
            )
            matching = []
            for item_id, metadata_json in rows:
                if id_set is not None and item_id not in id_set:
                    continue
                if filters:
                    metadata = json.loads(metadata_json)
                    if not all(metadata.get(k) == v for k, v in filters.items()):
                        continue
                matching.append(self._key(namespace, item_id))

            if not matching:
                return 0

            placeholders = ",".join("?" * len(matching))
            with conn:
                conn.execute(
                    f"DELETE FROM vec_items WHERE namespace = ? AND composite_id IN ({placeholders})",
                    (namespace, *matching),
                )
            return len(matching)

        deleted = await asyncio.to_thread(_delete)

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.VECTORSTORE_DELETE_DURATION, elapsed_ms, _LABELS)
        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "delete"}
        )
        return deleted

    async def clear(self, *, namespace: str = DEFAULT_NAMESPACE) -> int:
        def _clear() -> int:
            conn = self._get_connection()
            (row,) = conn.execute(
                "SELECT COUNT(*) FROM vec_items WHERE namespace = ?", (namespace,)
            )
            with conn:
                conn.execute("DELETE FROM vec_items WHERE namespace = ?", (namespace,))
            return int(row[0])

        with timed(self.metrics_hook, names.VECTORSTORE_DELETE_DURATION, _LABELS):
            deleted = await asyncio.to_thread(_clear)
        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "clear"}
        )
        return deleted

    async def count(self, *, namespace: str = DEFAULT_NAMESPACE) -> int:
        def _count() -> int:
            conn = self._get_connection()
            (row,) = conn.execute(
                "SELECT COUNT(*) FROM vec_items WHERE namespace = ?", (namespace,)
            )
            return int(row[0])

        return await asyncio.to_thread(_count)
