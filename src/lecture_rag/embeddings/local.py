# src/lecture_rag/embeddings/local.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from time import monotonic

from sentence_transformers import SentenceTransformer

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook

from .base import Embedding, EmbeddingsClient

logger = logging.getLogger(__name__)


class LocalEmbeddingsClient(EmbeddingsClient):
    """In-process embeddings with sentence-transformers.

    Encoding is CPU-bound, so each batch runs in a worker thread.
    """

    def __init__(
        self,
        model_name: str,
        batch_size: int = 64,
        normalize: bool = True,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._model = SentenceTransformer(model_name)
        self._batch_size = batch_size
        self._normalize = normalize
        self.metrics_hook = metrics_hook
        logger.info(
            "Initialized LocalEmbeddingsClient with model=%s, batch_size=%s, normalize=%s",
            model_name,
            batch_size,
            normalize,
        )

    async def embed(self, texts: list[str]) -> list[Embedding]:
        if not texts:
            return []

        start = monotonic()
        embeddings: list[Embedding] = []

        for batch in _batches(texts, self._batch_size):
            vectors = await asyncio.to_thread(
                self._model.encode,
                batch,
                convert_to_numpy=True,
                normalize_embeddings=self._normalize,
                show_progress_bar=False,
            )
            embeddings.extend(Embedding(vector=v.tolist()) for v in vectors)

        elapsed_ms = 1000 * (monotonic() - start)
        labels = {"backend": "local"}
        self.metrics_hook.record_latency(names.EMBEDDINGS_DURATION, elapsed_ms, labels)
        self.metrics_hook.increment(names.EMBEDDINGS_REQUESTS_TOTAL, labels=labels)
        self.metrics_hook.record_gauge(names.EMBEDDINGS_BATCH_SIZE, len(texts), labels)
        logger.debug("Embedded %d texts in %.0fms", len(embeddings), elapsed_ms)
        return embeddings


def _batches(items: list[str], batch_size: int) -> Iterable[list[str]]:
    for i in range(0, len(items), batch_size):
        yield items[i : i + batch_size]
