"""Tests for the Ollama client against a mocked HTTP transport."""
import json

import httpx
import pytest

from docqa.llm_client import OllamaClient


def make_client(handler) -> OllamaClient:
    return OllamaClient(base_url="http://ollama.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_embeddings_posts_model_and_prompt():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [0.1, 0.2]})

    data = await make_client(handler).embeddings("hello", model="embed-test")

    assert data == {"embedding": [0.1, 0.2]}
    assert seen == {"path": "/api/embeddings", "body": {"model": "embed-test", "prompt": "hello"}}


@pytest.mark.asyncio
async def test_generate_is_non_streaming():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "hi there"})

    data = await make_client(handler).generate("prompt text", model="chat-test", temperature=0.2)

    assert data["response"] == "hi there"
    assert seen["path"] == "/api/generate"
    assert seen["body"] == {
        "model": "chat-test",
        "prompt": "prompt text",
        "stream": False,
        "options": {"temperature": 0.2},
    }


@pytest.mark.asyncio
async def test_http_errors_are_raised():
    client = make_client(lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(httpx.HTTPStatusError):
        await client.embeddings("hello")


@pytest.mark.asyncio
async def test_list_models():
    client = make_client(
        lambda request: httpx.Response(200, json={"models": [{"name": "a:latest"}, {"name": "b"}]})
    )
    assert await client.list_models() == ["a:latest", "b"]
