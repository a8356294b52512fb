"""Shared fixtures: a temporary store and scripted LLM backends."""
from typing import Dict, List
from unittest.mock import AsyncMock

import pytest

from docqa.rag.chunker import TextChunker
from docqa.rag.embedder import EmbeddingGateway
from docqa.rag.ingest import IngestPipeline
from docqa.rag.answerer import Answerer
from docqa.store import DocumentStore


class ScriptedEmbeddings:
    """Embedding backend answering from a text -> vector table."""

    def __init__(self, vectors: Dict[str, List[float]], default: List[float] = None):
        self.vectors = vectors
        self.default = default or [0.0, 0.0]
        self.embeddings = AsyncMock(side_effect=self._embed)

    async def _embed(self, prompt: str, model: str = None):
        return {"embedding": self.vectors.get(prompt, self.default)}

    @property
    def prompts(self) -> List[str]:
        return [c.kwargs.get("prompt", c.args[0] if c.args else None) for c in self.embeddings.call_args_list]


class ScriptedGenerator:
    """Generation backend returning numbered answers and recording prompts."""

    def __init__(self):
        self.count = 0
        self.generate = AsyncMock(side_effect=self._generate)

    async def _generate(self, prompt: str):
        self.count += 1
        return {"response": f"answer {self.count}"}

    @property
    def prompts(self) -> List[str]:
        return [c.args[0] for c in self.generate.call_args_list]


@pytest.fixture
def storage_path(tmp_path):
    return tmp_path / "storage.json"


@pytest.fixture
def store(storage_path) -> DocumentStore:
    return DocumentStore(storage_path)


@pytest.fixture
def embeddings() -> ScriptedEmbeddings:
    return ScriptedEmbeddings(
        {
            "AAAA": [1.0, 0.0],
            "BBBB": [0.0, 1.0],
            "Tell me about A": [0.9, 0.1],
            "Tell me about B": [0.1, 0.9],
        },
        default=[0.5, 0.5],
    )


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def gateway(embeddings) -> EmbeddingGateway:
    return EmbeddingGateway(embeddings)


@pytest.fixture
def pipeline(store, gateway) -> IngestPipeline:
    return IngestPipeline(store, gateway=gateway, chunker=TextChunker(chunk_size=4, chunk_overlap=0))


@pytest.fixture
def answerer(store, gateway, generator) -> Answerer:
    return Answerer(store, gateway=gateway, generator=generator)
