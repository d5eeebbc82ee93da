from dataclasses import dataclass
from typing import Protocol

from lecture_rag.observability.base import MetricsHook


@dataclass(frozen=True)
class Embedding:
    vector: list[float]


class EmbeddingsClient(Protocol):
    metrics_hook: MetricsHook

    async def embed(self, texts: list[str]) -> list[Embedding]: ...


async def embed_one(client: EmbeddingsClient, text: str) -> list[float]:
    """Embed a single text and return its raw vector."""
    (embedding,) = await client.embed([text])
    return embedding.vector
