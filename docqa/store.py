"""Durable document store for uploaded documents.

Holds every document (chunks, embeddings and Q&A history) in memory and
mirrors the whole mapping to a single JSON file after each mutation:
- Loaded once at construction; a missing or corrupt file means an empty store
- ``put`` and ``append_history`` rewrite the file before returning
- A failed write rolls the in-memory change back and raises PersistenceFailure
"""
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional
import structlog

from docqa import config
from docqa.errors import DuplicateId, NotFound, PersistenceFailure
from docqa.models import Document, DocumentSummary, HistoryEntry

logger = structlog.get_logger()


class DocumentStore:
    """In-memory document mapping with flush-on-mutation persistence."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize the store and rehydrate it from disk.

        Args:
            path: JSON file backing the store (default: config.STORAGE_PATH)
        """
        self.path = Path(path) if path is not None else config.STORAGE_PATH
        self._documents: Dict[str, Document] = {}
        # Guards the read-modify-write-persist sequence of every mutation
        self._lock = threading.RLock()
        self.load()

    def load(self) -> None:
        """Replace the in-memory mapping with the durable copy.

        Never raises: unreadable or malformed files yield an empty store.
        """
        with self._lock:
            self._documents = {}

            if not self.path.exists():
                logger.info("document_store_empty", path=str(self.path))
                return

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if not isinstance(raw, dict):
                    raise ValueError(f"expected an object, got {type(raw).__name__}")
                documents = {
                    doc_id: Document.from_dict(doc_id, data)
                    for doc_id, data in raw.items()
                }
            except (OSError, ValueError, KeyError, TypeError, AttributeError, RecursionError) as e:
                logger.warning(
                    "document_store_load_failed",
                    path=str(self.path),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return

            self._documents = documents
            logger.info(
                "document_store_loaded",
                path=str(self.path),
                document_count=len(self._documents),
            )

    def _persist(self) -> None:
        """Atomically rewrite the whole store file.

        Raises:
            PersistenceFailure: If serialization or the write fails
        """
        payload = {doc_id: doc.to_dict() for doc_id, doc in self._documents.items()}

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error(
                "document_store_persist_failed",
                path=str(self.path),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceFailure(
                f"Failed to persist document store to {self.path}: {e}"
            ) from e

        logger.debug(
            "document_store_persisted",
            path=str(self.path),
            document_count=len(self._documents),
        )

    def put(self, document: Document) -> None:
        """Insert a new document and persist.

        Raises:
            DuplicateId: If a document with the same id exists
            PersistenceFailure: If the store could not be written
        """
        with self._lock:
            if document.id in self._documents:
                raise DuplicateId(f"Document {document.id} already exists")

            self._documents[document.id] = document
            try:
                self._persist()
            except PersistenceFailure:
                del self._documents[document.id]
                raise

        logger.info(
            "document_stored",
            document_id=document.id,
            filename=document.filename,
            chunk_count=len(document.chunks),
            document_count=len(self._documents),
        )

    def get(self, document_id: str) -> Document:
        """Look up a document.

        Raises:
            NotFound: If no document has that id
        """
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise NotFound(f"Document {document_id} not found")
        return document

    def list(self) -> List[DocumentSummary]:
        """Summaries of every document, in insertion order."""
        with self._lock:
            return [doc.summary() for doc in self._documents.values()]

    def append_history(self, document_id: str, entry: HistoryEntry) -> List[HistoryEntry]:
        """Append a Q&A exchange to a document and persist.

        Returns:
            The document's full history after the append

        Raises:
            NotFound: If no document has that id
            PersistenceFailure: If the store could not be written
        """
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                raise NotFound(f"Document {document_id} not found")

            document.history.append(entry)
            try:
                self._persist()
            except PersistenceFailure:
                document.history.pop()
                raise

            history = list(document.history)

        logger.info(
            "history_appended",
            document_id=document_id,
            history_count=len(history),
        )
        return history

    def __contains__(self, document_id: object) -> bool:
        with self._lock:
            return document_id in self._documents

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)


# Singleton instance for convenience
_store_instance: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """Get or create the process-wide document store.

    Returns:
        DocumentStore backed by config.STORAGE_PATH
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = DocumentStore()
    return _store_instance
