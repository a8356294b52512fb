"""Embedding gateway.

The embedding backend's response schema differs between API versions and
SDKs. This module is the only place that knows about those shapes: callers
always get a flat ``List[float]``.
"""
import json
import math
from numbers import Real
from typing import Any, Callable, List, Optional, Sequence
import structlog

from docqa.errors import DocQAError, ExternalCapabilityFailure, UnrecognizedResponseShape
from docqa.llm_client import ollama_client

logger = structlog.get_logger()

DIAGNOSTIC_DUMP_CHARS = 200

Vector = List[float]
ShapeMatcher = Callable[[Any], Optional[Vector]]


def _field(obj: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an object attribute."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_vector(value: Any) -> Optional[Vector]:
    """Coerce a bare list of numbers, or a ``{"values": [...]}`` holder."""
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        value = _field(value, "values")
        if not isinstance(value, (list, tuple)):
            return None
    if not value:
        return None
    if not all(
        isinstance(x, Real) and not isinstance(x, bool) and math.isfinite(x)
        for x in value
    ):
        return None
    return [float(x) for x in value]


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    return None


def match_direct_vector(raw: Any) -> Optional[Vector]:
    """``{"embedding": [...]}`` or ``{"embedding": {"values": [...]}}``."""
    return _as_vector(_field(raw, "embedding"))


def match_result_list(raw: Any) -> Optional[Vector]:
    """``{"data": [{"embedding": [...]}, ...]}``."""
    first = _first(_field(raw, "data"))
    if first is None:
        return None
    return _as_vector(_field(first, "embedding"))


def match_nested_embeddings(raw: Any) -> Optional[Vector]:
    """``{"embeddings": [[...]]}`` or ``{"embeddings": [{"values": [...]}]}``."""
    return _as_vector(_first(_field(raw, "embeddings")))


SHAPE_MATCHERS: Sequence[ShapeMatcher] = (
    match_direct_vector,
    match_result_list,
    match_nested_embeddings,
)


def dump_for_diagnostics(raw: Any, limit: int = DIAGNOSTIC_DUMP_CHARS) -> str:
    try:
        text = json.dumps(raw, default=str)
    except (TypeError, ValueError):
        text = repr(raw)
    return text[:limit]


def normalize_embedding(raw: Any) -> Vector:
    """Extract the embedding vector from a raw backend response.

    Raises:
        UnrecognizedResponseShape: If no known shape matches
    """
    for matcher in SHAPE_MATCHERS:
        vector = matcher(raw)
        if vector is not None:
            return vector

    dump = dump_for_diagnostics(raw)
    logger.error("embedding_response_unrecognized", response_preview=dump)
    raise UnrecognizedResponseShape(
        f"Unexpected embedding response shape: {dump}", detail=dump
    )


class EmbeddingGateway:
    """Turns text into a vector via an external embedding backend.

    The backend is any object with an async ``embeddings(prompt)`` method,
    by default the shared Ollama client.
    """

    def __init__(self, capability: Any = None, model: Optional[str] = None):
        self.capability = capability or ollama_client
        self.model = model

    async def _request(self, text: str) -> Any:
        if self.model:
            return await self.capability.embeddings(prompt=text, model=self.model)
        return await self.capability.embeddings(prompt=text)

    async def embed(self, text: str) -> Vector:
        """Embed a single text.

        Raises:
            ExternalCapabilityFailure: If the backend call fails
            UnrecognizedResponseShape: If the response cannot be interpreted
        """
        try:
            raw = await self._request(text)
        except DocQAError:
            raise
        except Exception as e:
            logger.error(
                "embedding_request_failed",
                error=str(e),
                error_type=type(e).__name__,
                text_preview=text[:100],
            )
            raise ExternalCapabilityFailure(
                f"Embedding request failed: {e}",
                detail=str(e)[:DIAGNOSTIC_DUMP_CHARS],
            ) from e

        return normalize_embedding(raw)

    async def embed_many(self, texts: Sequence[str]) -> List[Vector]:
        """Embed texts strictly one at a time, in order.

        Requests are never issued concurrently so an upload cannot burst past
        the backend's rate limits. The first failure aborts the whole batch.
        """
        vectors: List[Vector] = []
        for index, text in enumerate(texts):
            vectors.append(await self.embed(text))
            logger.debug("chunk_embedded", chunk_index=index, total=len(texts))
        return vectors
