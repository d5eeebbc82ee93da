# src/lecture_rag/embeddings/config.py

from dataclasses import dataclass
from typing import Literal

Provider = Literal["openai", "local"]


@dataclass(frozen=True)
class EmbeddingsConfig:
    provider: Provider = "local"
    model: str = "sentence-transformers/all-mpnet-base-v2"
    # Must match the vector store column / table width.
    dimensions: int = 768
    timeout: float = 30.0
    batch_size: int = 64
    normalize: bool = True

    # openai only
    api_key: str | None = None
    base_url: str | None = None
