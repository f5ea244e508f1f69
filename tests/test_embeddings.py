"""Tests for embeddings generation with a mocked OpenAI client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from docintel.core.embeddings import OpenAIEmbedder
from docintel.core.errors import UpstreamServiceError


def _fake_create(dimension: int = 4, reverse: bool = True):
    """Return embeddings whose first value encodes the input text, out of order."""

    async def create(model, input):
        data = [
            SimpleNamespace(index=i, embedding=[float(len(text))] + [0.0] * (dimension - 1))
            for i, text in enumerate(input)
        ]
        if reverse:
            data.reverse()
        return SimpleNamespace(data=data)

    return create


def _client(side_effect) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(side_effect=side_effect)
    return client


@pytest.mark.asyncio
async def test_embed_preserves_input_order_across_batches():
    """Test out-of-order API results are re-sorted and batches concatenated."""
    client = _client(_fake_create())
    embedder = OpenAIEmbedder(client, model="m", dimension=4, batch_size=2)

    texts = ["a", "bb", "ccc", "dddd", "eeeee"]
    vectors = await embedder.embed(texts)

    assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert client.embeddings.create.await_count == 3


@pytest.mark.asyncio
async def test_embed_empty_makes_no_call():
    client = _client(_fake_create())
    embedder = OpenAIEmbedder(client, dimension=4)

    assert await embedder.embed([]) == []
    client.embeddings.create.assert_not_called()


@pytest.mark.asyncio
async def test_embed_one():
    embedder = OpenAIEmbedder(_client(_fake_create()), dimension=4)
    assert await embedder.embed_one("abc") == [3.0, 0.0, 0.0, 0.0]


@pytest.mark.asyncio
async def test_dimension_mismatch_raises():
    embedder = OpenAIEmbedder(_client(_fake_create(dimension=3)), dimension=4)

    with pytest.raises(UpstreamServiceError) as exc_info:
        await embedder.embed(["text"])

    assert "dimension mismatch" in exc_info.value.detail


@pytest.mark.asyncio
async def test_api_failure_raises_upstream_error():
    """Test a failing batch aborts with UpstreamServiceError."""
    client = _client(RuntimeError("API down"))
    embedder = OpenAIEmbedder(client, dimension=4)

    with pytest.raises(UpstreamServiceError) as exc_info:
        await embedder.embed(["text"])

    assert exc_info.value.service == "embedding"


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        OpenAIEmbedder(MagicMock(), batch_size=0)
