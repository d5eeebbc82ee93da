# src/lecture_rag/llms/__init__.py

"""LLM client layer.

The rest of lecture-rag treats the model as a black-box text-completion
service: a prompt goes in, a best-effort string comes out.

Example:
    >>> from lecture_rag.llms import create_llm_client, LLMConfig, Message, Role
    >>>
    >>> config = LLMConfig(provider="openai", model="llama3.1",
    ...                    base_url="http://localhost:11434/v1", api_key="ollama")
    >>> client = create_llm_client(config)
    >>> response = await client.complete(
    ...     messages=[Message(role=Role.USER, content="Hello!")]
    ... )
    >>> print(response.text)
"""

from .base import LLMClient, LLMResponse, Message, Role, Usage
from .config import LLMConfig
from .factory import create_llm_client

__all__ = [
    "create_llm_client",
    "LLMClient",
    "LLMConfig",
    "Message",
    "Role",
    "LLMResponse",
    "Usage",
]
