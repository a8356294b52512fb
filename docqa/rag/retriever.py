"""Retriever for semantic search over a stored document.

Handles:
- Query embedding generation
- Cosine ranking of the document's chunks
- Context formatting for the answer prompt
"""
from typing import List, Optional, Sequence
import structlog

from docqa import config
from docqa.errors import UnrecognizedResponseShape
from docqa.rag.embedder import EmbeddingGateway
from docqa.rag.ranker import ScoredChunk, top_k as select_top_k
from docqa.store import DocumentStore

logger = structlog.get_logger()

CONTEXT_SEPARATOR = "\n\n---\n\n"


class Retriever:
    """Semantic retriever over one document's chunks."""

    def __init__(
        self,
        store: DocumentStore,
        gateway: EmbeddingGateway,
        top_k: Optional[int] = None,
    ):
        """Initialize the retriever.

        Args:
            store: Document store to read chunks from
            gateway: Embedding gateway used for the query
            top_k: Number of chunks to keep (default from config)
        """
        self.store = store
        self.gateway = gateway
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k

    async def retrieve(self, document_id: str, query: str) -> List[ScoredChunk]:
        """Retrieve the most relevant chunks of a document for a query.

        Returns:
            Up to ``top_k`` scored chunks, best first

        Raises:
            NotFound: If the document does not exist
            ExternalCapabilityFailure: If embedding the query fails
            UnrecognizedResponseShape: If the embedding response is unusable or
                its length differs from the stored chunk vectors
        """
        document = self.store.get(document_id)
        query_vector = await self.gateway.embed(query)

        stored = sorted({len(c.embedding) for c in document.chunks})
        if any(dim != len(query_vector) for dim in stored):
            logger.error(
                "embedding_dimension_mismatch",
                document_id=document_id,
                query_dimension=len(query_vector),
                stored_dimensions=stored,
            )
            raise UnrecognizedResponseShape(
                f"Query embedding has {len(query_vector)} dimensions but document "
                f"{document_id} stores {stored}; re-upload it with the current model",
                detail=f"query={len(query_vector)} stored={stored}",
            )

        results = select_top_k(query_vector, document.chunks, self.top_k)

        logger.info(
            "retrieval_completed",
            document_id=document_id,
            query_length=len(query),
            chunk_count=len(document.chunks),
            results_returned=len(results),
            top_score=results[0].score if results else None,
        )
        return results

    @staticmethod
    def format_context(results: Sequence[ScoredChunk]) -> str:
        """Join chunk texts in ranked order with a visible separator."""
        return CONTEXT_SEPARATOR.join(r.text for r in results)
