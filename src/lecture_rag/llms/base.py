# src/lecture_rag/llms/base.py

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Protocol

from lecture_rag.observability.base import MetricsHook


class Role(str, Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single prompt message. Provider-agnostic."""

    role: Role
    content: str


@dataclass(frozen=True)
class Usage:
    """Token usage for a completion."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class LLMResponse:
    """Normalized completion.

    ``content`` is whatever text the model produced. It may be ``None``,
    empty, fenced in Markdown or not JSON at all; callers parse it.
    """

    content: str | None
    finish_reason: Literal["stop", "length", "error"]
    usage: Usage
    latency_ms: float

    @property
    def text(self) -> str:
        return self.content or ""


class LLMClient(Protocol):
    """Text-completion service.

    Stateless: every call receives the full message list. Adapters retry
    transport errors only; bad model output is the caller's problem.
    """

    metrics_hook: MetricsHook

    async def complete(
        self,
        *,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Single completion.

        Raises:
            Provider-specific errors after retry exhaustion.
        """
        ...
