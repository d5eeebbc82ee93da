from unittest.mock import AsyncMock, Mock, patch

import pytest
from openai import APITimeoutError

from lecture_rag.embeddings.base import Embedding
from lecture_rag.embeddings.openai import OpenAIEmbeddingsClient


def _mock_response(num_embeddings: int) -> Mock:
    """Create a mock response with the given number of embeddings."""
    return Mock(data=[Mock(embedding=[0.1, 0.2, 0.3]) for _ in range(num_embeddings)])


@pytest.mark.asyncio
async def test_embed_returns_one_vector_per_input() -> None:
    client = OpenAIEmbeddingsClient(api_key="fake", model="fake-model")

    mock_client = AsyncMock()
    mock_client.embeddings.create.return_value = _mock_response(3)
    client._client = mock_client

    embeddings = await client.embed(["a", "b", "c"])

    assert len(embeddings) == 3
    assert all(isinstance(e, Embedding) for e in embeddings)
    assert all(isinstance(e.vector, list) for e in embeddings)


@pytest.mark.asyncio
async def test_embed_respects_batch_size() -> None:
    """Test that texts are batched according to batch_size parameter."""
    client = OpenAIEmbeddingsClient(api_key="fake", model="fake-model", batch_size=2)

    mock_client = AsyncMock()
    mock_client.embeddings.create.side_effect = [
        _mock_response(2),
        _mock_response(2),
        _mock_response(1),
    ]
    client._client = mock_client

    embeddings = await client.embed(["a", "b", "c", "d", "e"])

    assert len(embeddings) == 5
    calls = mock_client.embeddings.create.call_args_list
    assert [len(call.kwargs["input"]) for call in calls] == [2, 2, 1]


@pytest.mark.asyncio
async def test_embed_raises_on_timeout() -> None:
    client = OpenAIEmbeddingsClient(api_key="fake", model="fake-model")

    mock_client = AsyncMock()
    mock_client.embeddings.create.side_effect = APITimeoutError(request=Mock())  # type: ignore[arg-type]
    client._client = mock_client

    with pytest.raises(APITimeoutError):
        await client.embed(["test"])


@pytest.mark.asyncio
async def test_embed_with_empty_input() -> None:
    """Test that empty input list returns empty embeddings list."""
    client = OpenAIEmbeddingsClient(api_key="fake", model="fake-model")

    mock_client = AsyncMock()
    client._client = mock_client

    embeddings = await client.embed([])

    assert embeddings == []
    mock_client.embeddings.create.assert_not_called()


@pytest.mark.asyncio
async def test_embed_keeps_input_order_across_batches() -> None:
    client = OpenAIEmbeddingsClient(api_key="fake", model="fake-model", batch_size=1)

    mock_client = AsyncMock()
    mock_client.embeddings.create.side_effect = lambda model, input: Mock(
        data=[Mock(embedding=[float(len(input[0]))])]
    )
    client._client = mock_client

    embeddings = await client.embed(["a", "bb", "ccc"])

    assert [e.vector for e in embeddings] == [[1.0], [2.0], [3.0]]


class TestFactory:
    def test_local_provider(self) -> None:
        from lecture_rag.embeddings import EmbeddingsConfig, create_embeddings_client
        from lecture_rag.embeddings.local import LocalEmbeddingsClient

        with patch("lecture_rag.embeddings.local.SentenceTransformer") as model:
            client = create_embeddings_client(EmbeddingsConfig(batch_size=8))

        assert isinstance(client, LocalEmbeddingsClient)
        model.assert_called_once_with("sentence-transformers/all-mpnet-base-v2")

    def test_openai_provider(self) -> None:
        from lecture_rag.embeddings import EmbeddingsConfig, create_embeddings_client

        client = create_embeddings_client(
            EmbeddingsConfig(provider="openai", model="text-embedding-3-small", api_key="k")
        )

        assert isinstance(client, OpenAIEmbeddingsClient)

    def test_unknown_provider(self) -> None:
        from lecture_rag.embeddings import EmbeddingsConfig, create_embeddings_client

        with pytest.raises(ValueError, match="Unknown embeddings provider"):
            create_embeddings_client(EmbeddingsConfig(provider="cohere"))  # type: ignore[arg-type]
