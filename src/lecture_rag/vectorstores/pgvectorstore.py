"""PostgreSQL + pgvector store (the production backend for the problem corpus)."""

from collections.abc import Iterable
from time import monotonic
from typing import Any

import numpy as np
from pgvector.psycopg import register_vector_async
from psycopg import AsyncConnection, sql
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook, timed

from .base import VectorStore
from .types import QueryResult, VectorItem

DEFAULT_NAMESPACE = "__global__"
_LABELS = {"backend": "pgvector"}


async def _configure_connection(conn: AsyncConnection) -> None:  # type: ignore[type-arg]
    await register_vector_async(conn)


class PgVectorStore(VectorStore):
    """Vectors in a ``vector_items`` table keyed by ``(namespace, id)``.

    Call :meth:`open` before use and :meth:`ensure_schema` once per database.
    """

    def __init__(
        self,
        dsn: str,
        pool_min_size: int = 1,
        pool_max_size: int = 10,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.metrics_hook = metrics_hook
        self._pool = AsyncConnectionPool(
            dsn,
            min_size=pool_min_size,
            max_size=pool_max_size,
            configure=_configure_connection,
            open=False,
        )

    async def open(self) -> None:
        await self._pool.open()

    async def close(self) -> None:
        await self._pool.close()

    async def ensure_schema(self, dimensions: int) -> None:
        async with self._pool.connection() as conn:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            await conn.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS vector_items (
                        namespace TEXT NOT NULL,
                        id TEXT NOT NULL,
                        embedding VECTOR({dims}) NOT NULL,
                        metadata JSONB NOT NULL,
                        PRIMARY KEY (namespace, id)
                    )
                    """
                ).format(dims=sql.Literal(dimensions))
            )

    async def upsert(
        self, *, namespace: str = DEFAULT_NAMESPACE, items: Iterable[VectorItem]
    ) -> None:
        start = monotonic()
        rows = [
            (namespace, item.id, np.array(item.vector), Json(dict(item.metadata)))
            for item in items
        ]
        if not rows:
            return

        async with self._pool.connection() as conn, conn.cursor() as cur:
            await cur.executemany(
                """
                INSERT INTO vector_items (namespace, id, embedding, metadata)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (namespace, id)
                DO UPDATE SET embedding = EXCLUDED.embedding, metadata = EXCLUDED.metadata
                """,
                rows,
            )

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
        start = monotonic()
        if top_k < 1:
            raise ValueError("top_k must be at least 1")

        where_sql, params = self._where(namespace, None, filters)
        # <=> is cosine distance in [0, 2]
        query = sql.SQL(
            """
            SELECT id, 1 - (embedding <=> %s) / 2 AS score, metadata
            FROM vector_items
            WHERE {where_clause}
            ORDER BY embedding <=> %s
            LIMIT %s
            """
        ).format(where_clause=where_sql)

        vector_arr = np.array(vector)
        async with self._pool.connection() as conn, conn.cursor() as cur:
            await cur.execute(query, [vector_arr, *params, vector_arr, top_k])
            rows = await cur.fetchall()

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.VECTORSTORE_QUERY_DURATION, elapsed_ms, _LABELS)
        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "query"}
        )
        return [QueryResult(id=row[0], score=float(row[1]), metadata=row[2]) for row in rows]

    async def delete(
        self,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        ids: Iterable[str] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> int:
        start = monotonic()
        id_list = list(ids) if ids is not None else None
        if not id_list and not filters:
            raise ValueError("delete requires ids or filters")

        where_sql, params = self._where(namespace, id_list, filters)
        query = sql.SQL("DELETE FROM vector_items WHERE {where_clause}").format(
            where_clause=where_sql
        )
        async with self._pool.connection() as conn, conn.cursor() as cur:
            await cur.execute(query, params)
            deleted: int = cur.rowcount

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.VECTORSTORE_DELETE_DURATION, elapsed_ms, _LABELS)
        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "delete"}
        )
        return deleted

    async def clear(self, *, namespace: str = DEFAULT_NAMESPACE) -> int:
        with timed(self.metrics_hook, names.VECTORSTORE_DELETE_DURATION, _LABELS):
            async with self._pool.connection() as conn, conn.cursor() as cur:
                await cur.execute("DELETE FROM vector_items WHERE namespace = %s", (namespace,))
                deleted: int = cur.rowcount

        self.metrics_hook.increment(
            names.VECTORSTORE_OPERATIONS_TOTAL, labels={**_LABELS, "operation": "clear"}
        )
        return deleted

    async def count(self, *, namespace: str = DEFAULT_NAMESPACE) -> int:
        async with self._pool.connection() as conn, conn.cursor() as cur:
            await cur.execute(
                "SELECT COUNT(*) FROM vector_items WHERE namespace = %s", (namespace,)
            )
            row = await cur.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _where(
        namespace: str, ids: list[str] | None, filters: dict[str, Any] | None
    ) -> tuple[sql.Composed, list[Any]]:
        clauses = [sql.SQL("namespace = %s")]
        params: list[Any] = [namespace]
        if ids:
            clauses.append(sql.SQL("id = ANY(%s)"))
            params.append(ids)
        for key, value in (filters or {}).items():
            clauses.append(sql.SQL("metadata ->> %s = %s"))
            params.extend([key, str(value)])
        return sql.SQL(" AND ").join(clauses), params
