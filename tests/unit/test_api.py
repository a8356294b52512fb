"""Tests for the HTTP surface using Quart's test client."""
from io import BytesIO

import pytest
from werkzeug.datastructures import FileStorage

from docqa.main import create_app
from docqa.rag.chunker import TextChunker


@pytest.fixture
def app(store, embeddings, generator):
    return create_app(
        store=store,
        embedding_capability=embeddings,
        generation_capability=generator,
        chunker=TextChunker(chunk_size=4, chunk_overlap=0),
    )


@pytest.fixture
def client(app):
    return app.test_client()


async def upload(client, content: bytes, filename: str):
    return await client.post(
        "/upload",
        files={"file": FileStorage(BytesIO(content), filename=filename)},
    )


@pytest.mark.asyncio
async def test_upload_then_list(client):
    response = await upload(client, b"AAAABBBB", "letters.txt")
    data = await response.get_json()

    assert response.status_code == 200
    assert data["success"] is True
    assert data["filename"] == "letters.txt"
    assert data["chunksCount"] == 2

    listing = await (await client.get("/documents")).get_json()
    assert listing["success"] is True
    assert [d["docId"] for d in listing["docs"]] == [data["docId"]]
    assert listing["docs"][0]["historyCount"] == 0


@pytest.mark.asyncio
async def test_upload_without_file(client):
    response = await client.post("/upload", form={"other": "x"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_unsupported_type(client, store):
    response = await upload(client, b"\x89PNG", "image.png")
    data = await response.get_json()

    assert response.status_code == 400
    assert data == {
        "success": False,
        "error": "UnsupportedFormat",
        "message": data["message"],
    }
    assert len(store) == 0


@pytest.mark.asyncio
async def test_ask_returns_answer_and_history(client):
    doc = await (await upload(client, b"AAAABBBB", "letters.txt")).get_json()

    response = await client.post("/ask", json={"docId": doc["docId"], "question": "Tell me about A"})
    data = await response.get_json()

    assert response.status_code == 200
    assert data["answer"] == "answer 1"
    assert data["history"][0]["question"] == "Tell me about A"
    assert data["history"][0]["answer"] == "answer 1"

    history = await (await client.get(f"/documents/{doc['docId']}/history")).get_json()
    assert len(history["history"]) == 1


@pytest.mark.asyncio
async def test_ask_unknown_document(client, generator):
    response = await client.post("/ask", json={"docId": "nope", "question": "Anything?"})
    data = await response.get_json()

    assert response.status_code == 404
    assert data["error"] == "NotFound"
    generator.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_ask_blank_question(client, embeddings):
    doc = await (await upload(client, b"AAAABBBB", "letters.txt")).get_json()
    embeddings.embeddings.reset_mock()

    response = await client.post("/ask", json={"docId": doc["docId"], "question": "   "})
    data = await response.get_json()

    assert response.status_code == 400
    assert data["error"] == "EmptyQuestion"
    embeddings.embeddings.assert_not_awaited()


@pytest.mark.asyncio
async def test_ask_question_too_long(client):
    response = await client.post("/ask", json={"docId": "x", "question": "q" * 5000})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_history_of_unknown_document(client):
    response = await client.get("/documents/missing/history")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/health/live")
    assert (await response.get_json())["status"] == "alive"


@pytest.mark.asyncio
async def test_dimension_mismatch_reports_kind(client, store):
    from docqa.models import Chunk, Document

    store.put(Document(id="wide", filename="w.txt", chunks=[Chunk("AAAA", [1.0, 0.0, 0.0])]))

    response = await client.post("/ask", json={"docId": "wide", "question": "Tell me about A"})
    data = await response.get_json()

    assert response.status_code == 502
    assert data["error"] == "UnrecognizedResponseShape"


@pytest.mark.asyncio
async def test_readiness_uses_injected_generation_backend(store, embeddings, generator):
    from unittest.mock import AsyncMock

    from docqa import config

    generator.list_models = AsyncMock(return_value=[config.CHAT_MODEL])
    app = create_app(store=store, embedding_capability=embeddings, generation_capability=generator)

    response = await app.test_client().get("/health/ready")
    data = await response.get_json()

    assert response.status_code == 200
    assert data["models"] is True
    generator.list_models.assert_awaited_once()
