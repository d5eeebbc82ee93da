# tests/unit/llms/test_openai.py

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from lecture_rag.llms.base import Message, Role
from lecture_rag.llms.openai import OpenAILLMClient
from lecture_rag.observability import names


@pytest.fixture
def mock_openai_response() -> MagicMock:
    """Create a mock OpenAI response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = '[{"name": "Vectors", "confidence": 0.9}]'
    response.choices[0].finish_reason = "stop"
    response.usage.prompt_tokens = 10
    response.usage.completion_tokens = 8
    response.usage.total_tokens = 18
    return response


def _client(mock_openai: MagicMock, **kwargs) -> tuple[OpenAILLMClient, MagicMock]:
    api = MagicMock()
    api.chat.completions.create = AsyncMock()
    mock_openai.return_value = api
    return OpenAILLMClient(api_key="test-key", model="gpt-4o", **kwargs), api


class TestOpenAILLMClient:
    @pytest.mark.asyncio
    async def test_complete_basic(self, mock_openai_response: MagicMock) -> None:
        with patch("lecture_rag.llms.openai.AsyncOpenAI") as mock_openai:
            client, api = _client(mock_openai)
            api.chat.completions.create.return_value = mock_openai_response

            response = await client.complete(
                messages=[
                    Message(role=Role.SYSTEM, content="You extract themes."),
                    Message(role=Role.USER, content="Transcript"),
                ]
            )

            assert response.content == '[{"name": "Vectors", "confidence": 0.9}]'
            assert response.finish_reason == "stop"
            assert response.usage.total_tokens == 18
            assert response.latency_ms >= 0

            kwargs = api.chat.completions.create.call_args.kwargs
            assert kwargs["model"] == "gpt-4o"
            assert kwargs["temperature"] == 0.0
            assert kwargs["messages"] == [
                {"role": "system", "content": "You extract themes."},
                {"role": "user", "content": "Transcript"},
            ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("provider_reason", "expected"),
        [("stop", "stop"), ("length", "length"), ("content_filter", "error")],
    )
    async def test_finish_reason_mapping(
        self, mock_openai_response: MagicMock, provider_reason: str, expected: str
    ) -> None:
        mock_openai_response.choices[0].finish_reason = provider_reason
        with patch("lecture_rag.llms.openai.AsyncOpenAI") as mock_openai:
            client, api = _client(mock_openai)
            api.chat.completions.create.return_value = mock_openai_response

            response = await client.complete(messages=[Message(role=Role.USER, content="Hi")])

            assert response.finish_reason == expected

    @pytest.mark.asyncio
    async def test_empty_content_is_passed_through(self, mock_openai_response: MagicMock) -> None:
        """Bad model output is the caller's problem, not the adapter's."""
        mock_openai_response.choices[0].message.content = None
        mock_openai_response.usage = None
        with patch("lecture_rag.llms.openai.AsyncOpenAI") as mock_openai:
            client, api = _client(mock_openai)
            api.chat.completions.create.return_value = mock_openai_response

            response = await client.complete(messages=[Message(role=Role.USER, content="Hi")])

            assert response.content is None
            assert response.text == ""
            assert response.usage.total_tokens == 0

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self, mock_openai_response: MagicMock) -> None:
        error = APIConnectionError(request=httpx.Request("POST", "https://api.openai.com"))
        with patch("lecture_rag.llms.openai.AsyncOpenAI") as mock_openai:
            client, api = _client(mock_openai, max_retries=2)
            api.chat.completions.create.side_effect = [error, mock_openai_response]

            response = await client.complete(messages=[Message(role=Role.USER, content="Hi")])

            assert response.finish_reason == "stop"
            assert api.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        error = APIConnectionError(request=httpx.Request("POST", "https://api.openai.com"))
        with patch("lecture_rag.llms.openai.AsyncOpenAI") as mock_openai:
            client, api = _client(mock_openai, max_retries=1)
            api.chat.completions.create.side_effect = error

            with pytest.raises(APIConnectionError):
                await client.complete(messages=[Message(role=Role.USER, content="Hi")])

    @pytest.mark.asyncio
    async def test_records_metrics(self, mock_openai_response: MagicMock) -> None:
        hook = MagicMock()
        with patch("lecture_rag.llms.openai.AsyncOpenAI") as mock_openai:
            client, api = _client(mock_openai, metrics_hook=hook)
            api.chat.completions.create.return_value = mock_openai_response

            await client.complete(messages=[Message(role=Role.USER, content="Hi")])

            hook.increment.assert_any_call(
                names.LLM_REQUESTS_TOTAL, labels={"provider": "openai", "model": "gpt-4o"}
            )
            hook.increment.assert_any_call(names.LLM_TOKENS_TOTAL, 18)
