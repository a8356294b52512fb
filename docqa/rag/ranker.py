"""Cosine-similarity ranking of a document's chunks against a query."""
from dataclasses import dataclass
from typing import List, Sequence
import numpy as np
import structlog

from docqa import config
from docqa.models import Chunk

logger = structlog.get_logger()


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk's text with its similarity to the query."""

    text: str
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Defined as 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    if va.shape != vb.shape:
        raise ValueError(
            f"Vector dimension mismatch: {va.shape[0]} vs {vb.shape[0]}"
        )

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


def rank(query_vector: Sequence[float], chunks: Sequence[Chunk]) -> List[ScoredChunk]:
    """Score every chunk against the query, best first.

    The sort is stable: chunks with equal scores keep their document order.
    """
    scored = [
        ScoredChunk(text=chunk.text, score=cosine_similarity(query_vector, chunk.embedding))
        for chunk in chunks
    ]
    scored.sort(key=lambda s: s.score, reverse=True)

    logger.debug(
        "chunks_ranked",
        chunk_count=len(scored),
        top_score=scored[0].score if scored else None,
    )
    return scored


def top_k(
    query_vector: Sequence[float],
    chunks: Sequence[Chunk],
    k: int = config.RETRIEVAL_TOP_K,
) -> List[ScoredChunk]:
    """The ``k`` best chunks, or all of them when there are fewer."""
    return rank(query_vector, chunks)[: max(k, 0)]
