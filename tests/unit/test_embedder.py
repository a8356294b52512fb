"""Tests for embedding response normalization."""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from docqa.errors import ExternalCapabilityFailure, UnrecognizedResponseShape
from docqa.rag.embedder import EmbeddingGateway, normalize_embedding


@pytest.mark.parametrize(
    "raw",
    [
        {"embedding": [0.1, 0.2, 3]},
        {"embedding": {"values": [0.1, 0.2, 3]}},
        {"data": [{"embedding": [0.1, 0.2, 3]}, {"embedding": [9.0, 9.0, 9.0]}]},
        {"embeddings": [[0.1, 0.2, 3]]},
        {"embeddings": [{"values": [0.1, 0.2, 3]}]},
        SimpleNamespace(embedding=SimpleNamespace(values=[0.1, 0.2, 3])),
    ],
)
def test_known_shapes_normalize_to_flat_floats(raw):
    vector = normalize_embedding(raw)
    assert vector == [0.1, 0.2, 3.0]
    assert all(isinstance(x, float) for x in vector)


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"embedding": []},
        {"embedding": ["a", "b"]},
        {"embedding": [float("nan"), 1.0]},
        {"embedding": [float("inf"), 1.0]},
        {"embeddings": [[1.0, float("-inf")]]},
        {"data": []},
        {"embeddings": []},
        {"vector": [1.0, 2.0]},
        "not a response",
        None,
    ],
)
def test_unknown_shapes_raise(raw):
    with pytest.raises(UnrecognizedResponseShape):
        normalize_embedding(raw)


def test_diagnostic_dump_is_truncated():
    raw = {"unexpected": "x" * 1000}
    with pytest.raises(UnrecognizedResponseShape) as exc_info:
        normalize_embedding(raw)

    assert exc_info.value.detail.startswith('{"unexpected": "xxx')
    assert len(exc_info.value.detail) == 200


@pytest.mark.asyncio
async def test_gateway_wraps_transport_errors():
    backend = SimpleNamespace(
        embeddings=AsyncMock(side_effect=httpx.ConnectError("connection refused"))
    )
    gateway = EmbeddingGateway(backend)

    with pytest.raises(ExternalCapabilityFailure) as exc_info:
        await gateway.embed("hello")

    assert "connection refused" in exc_info.value.message
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_embed_many_is_sequential_and_ordered(embeddings):
    gateway = EmbeddingGateway(embeddings)

    vectors = await gateway.embed_many(["BBBB", "AAAA", "BBBB"])

    assert vectors == [[0.0, 1.0], [1.0, 0.0], [0.0, 1.0]]
    assert embeddings.prompts == ["BBBB", "AAAA", "BBBB"]


@pytest.mark.asyncio
async def test_embed_many_stops_at_first_failure():
    calls = []

    async def flaky(prompt, model=None):
        calls.append(prompt)
        if prompt == "two":
            raise httpx.ReadTimeout("timed out")
        return {"embedding": [1.0]}

    gateway = EmbeddingGateway(SimpleNamespace(embeddings=flaky))

    with pytest.raises(ExternalCapabilityFailure):
        await gateway.embed_many(["one", "two", "three"])

    assert calls == ["one", "two"]
