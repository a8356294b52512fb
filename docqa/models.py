"""Records held by the document store."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Chunk:
    """A slice of document text paired with its embedding vector."""

    text: str
    embedding: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "embedding": list(self.embedding)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        return cls(
            text=data["text"],
            embedding=[float(x) for x in data.get("embedding", [])],
        )


@dataclass(frozen=True)
class HistoryEntry:
    """One question/answer exchange against a document."""

    question: str
    answer: str
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        # Older storage files used the short "q"/"a" keys
        return cls(
            question=data.get("question", data.get("q", "")),
            answer=data.get("answer", data.get("a", "")),
            created_at=str(data.get("createdAt", "")),
        )


@dataclass
class Document:
    """An uploaded document with its embedded chunks and Q&A history."""

    id: str
    filename: str
    chunks: List[Chunk]
    history: List[HistoryEntry] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now)

    def summary(self) -> "DocumentSummary":
        return DocumentSummary(
            id=self.id,
            filename=self.filename,
            chunk_count=len(self.chunks),
            history_count=len(self.history),
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "chunks": [c.to_dict() for c in self.chunks],
            "history": [h.to_dict() for h in self.history],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, document_id: str, data: Dict[str, Any]) -> "Document":
        return cls(
            id=document_id,
            filename=data.get("filename", ""),
            chunks=[Chunk.from_dict(c) for c in data.get("chunks", [])],
            history=[HistoryEntry.from_dict(h) for h in data.get("history", [])],
            created_at=str(data.get("createdAt", "")),
        )


@dataclass(frozen=True)
class DocumentSummary:
    """Listing view of a stored document."""

    id: str
    filename: str
    chunk_count: int
    history_count: int
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "docId": self.id,
            "filename": self.filename,
            "chunksCount": self.chunk_count,
            "historyCount": self.history_count,
            "createdAt": self.created_at,
        }
