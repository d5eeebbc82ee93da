# src/lecture_rag/llms/config.py

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for LLM clients.

    ``base_url`` points the OpenAI adapter at any compatible server, e.g. a
    local Ollama instance at ``http://localhost:11434/v1``.
    """

    provider: Literal["openai", "anthropic"] = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None  # Falls back to provider's env var
    base_url: str | None = None
    timeout: float = 60.0
    max_retries: int = 3
