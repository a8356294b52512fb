"""Ingest pipeline for uploaded documents.

Orchestrates:
- Text extraction by file extension
- Text chunking
- Sequential embedding generation
- Document storage

A document is stored only after every chunk has been embedded; any failure
earlier leaves the store untouched.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
import structlog

from docqa.errors import UnrecognizedResponseShape
from docqa.models import Chunk, Document
from docqa.rag.chunker import TextChunker
from docqa.rag.embedder import EmbeddingGateway
from docqa.rag.extractor import TextExtractor
from docqa.store import DocumentStore

logger = structlog.get_logger()

_id_lock = threading.Lock()
_last_id = 0


def new_document_id() -> str:
    """Millisecond timestamp id, strictly increasing within the process."""
    global _last_id
    with _id_lock:
        candidate = time.time_ns() // 1_000_000
        _last_id = max(candidate, _last_id + 1)
        return str(_last_id)


@dataclass(frozen=True)
class UploadResult:
    document_id: str
    filename: str
    chunk_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "docId": self.document_id,
            "filename": self.filename,
            "chunksCount": self.chunk_count,
        }


class IngestPipeline:
    """Pipeline for turning an uploaded file into a stored document."""

    def __init__(
        self,
        store: DocumentStore,
        gateway: Optional[EmbeddingGateway] = None,
        extractor: Optional[TextExtractor] = None,
        chunker: Optional[TextChunker] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            store: Document store receiving the result
            gateway: Embedding gateway (default: Ollama-backed)
            extractor: Text extractor (default: TXT/PDF/DOCX)
            chunker: Text chunker (default sizes from config)
        """
        self.store = store
        self.gateway = gateway or EmbeddingGateway()
        self.extractor = extractor or TextExtractor()
        self.chunker = chunker or TextChunker()

        logger.debug(
            "ingest_pipeline_initialized",
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
        )

    async def ingest(self, content: bytes, filename: str) -> UploadResult:
        """Extract, chunk, embed and store an uploaded file.

        Args:
            content: Raw file bytes
            filename: Original file name; its extension selects the extractor

        Raises:
            UnsupportedFormat: If the extension is not supported
            ExtractionFailure: If the file could not be parsed
            ExternalCapabilityFailure: If any embedding call fails
            UnrecognizedResponseShape: If any embedding response is unusable
            PersistenceFailure: If the store could not be written
        """
        logger.info("ingesting_file", filename=filename, size_bytes=len(content))
        text = self.extractor.extract(content, filename)
        return await self.ingest_text(text, filename)

    async def ingest_text(self, text: str, filename: str) -> UploadResult:
        """Chunk, embed and store already-extracted text."""
        pieces = self.chunker.chunk_text(text)
        if not pieces:
            logger.warning("no_chunks_created", filename=filename)

        try:
            vectors = await self.gateway.embed_many([p.content for p in pieces])
        except Exception as e:
            logger.error(
                "upload_aborted",
                filename=filename,
                chunk_count=len(pieces),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        dimensions = [len(v) for v in vectors]
        if len(set(dimensions)) > 1:
            logger.error(
                "upload_aborted",
                filename=filename,
                chunk_count=len(pieces),
                error="embedding dimensions differ",
                dimensions=sorted(set(dimensions)),
            )
            raise UnrecognizedResponseShape(
                f"Embedding dimensions differ within one upload: {sorted(set(dimensions))}",
                detail=str(dimensions)[:200],
            )

        document = Document(
            id=new_document_id(),
            filename=filename,
            chunks=[Chunk(text=p.content, embedding=v) for p, v in zip(pieces, vectors)],
        )
        self.store.put(document)

        logger.info(
            "file_ingested",
            document_id=document.id,
            filename=filename,
            chunks_created=len(document.chunks),
        )
        return UploadResult(
            document_id=document.id,
            filename=filename,
            chunk_count=len(document.chunks),
        )
