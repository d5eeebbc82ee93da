# src/lecture_rag/ingestion/config.py

from dataclasses import dataclass


@dataclass(frozen=True)
class IngestionConfig:
    base_url: str = "https://datasets-server.huggingface.co"
    dataset: str = "zwhe99/DeepMath-103K"
    config: str = "default"
    split: str = "train"
    # The datasets server rejects /rows requests longer than 100.
    batch_size: int = 100
    max_rows: int = 0  # 0 = whole split
    request_delay_seconds: float = 0.25
    index_embeddings: bool = False
    index_chunk_size: int = 100
    index_delay_seconds: float = 0.2
    http_timeout: float = 30.0
    http_attempts: int = 3
    token: str | None = None
