# src/lecture_rag/embeddings/openai.py

import asyncio
import logging
from time import monotonic
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook

from .base import Embedding, EmbeddingsClient

logger = logging.getLogger(__name__)


class OpenAIEmbeddingsClient(EmbeddingsClient):
    """Embeddings over the OpenAI API or a compatible server (e.g. Ollama)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        timeout: float = 30.0,
        batch_size: int = 64,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ):
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self._model = model
        self._batch_size = batch_size
        self.metrics_hook = metrics_hook
        logger.info(
            "Initialized OpenAIEmbeddingsClient with model=%s, base_url=%s, batch_size=%s",
            model,
            base_url or "default",
            batch_size,
        )

    async def embed(self, texts: list[str]) -> list[Embedding]:
        if not texts:
            return []

        start = monotonic()
        batches = [
            texts[i : i + self._batch_size]
            for i in range(0, len(texts), self._batch_size)
        ]
        responses = await asyncio.gather(*[self._embed_batch(b) for b in batches])

        embeddings = [
            Embedding(vector=data.embedding)
            for response in responses
            for data in response.data
        ]

        elapsed_ms = 1000 * (monotonic() - start)
        labels = {"backend": "openai"}
        self.metrics_hook.record_latency(names.EMBEDDINGS_DURATION, elapsed_ms, labels)
        self.metrics_hook.increment(names.EMBEDDINGS_REQUESTS_TOTAL, labels=labels)
        self.metrics_hook.record_gauge(names.EMBEDDINGS_BATCH_SIZE, len(texts), labels)
        logger.debug("Embedded %d texts in %d batches", len(embeddings), len(batches))
        return embeddings

    async def _embed_batch(self, batch: list[str]) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(OpenAIError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._client.embeddings.create(
                    model=self._model,
                    input=batch,
                )
