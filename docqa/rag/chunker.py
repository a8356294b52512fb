"""Text chunking with overlap for RAG pipeline.

Fixed-size character windows; the last window may be shorter.
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from docqa import config

logger = structlog.get_logger()


@dataclass(frozen=True)
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)

        Raises:
            ValueError: If the configuration would not make progress
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ValueError(f"Overlap must not be negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    @property
    def step(self) -> int:
        return self.chunk_size - self.chunk_overlap

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into overlapping windows.

        Windows start at 0, step, 2*step, ... and stop once a window has
        reached the end of the text, so no trailing window is wholly
        contained in its predecessor.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects (empty for empty text)
        """
        if not text:
            return []

        text_length = len(text)
        chunks = []
        start = 0

        while start < text_length:
            end = min(start + self.chunk_size, text_length)
            chunks.append(
                TextChunk(
                    content=text[start:end],
                    char_start=start,
                    char_end=end,
                    chunk_index=len(chunks),
                )
            )
            if end >= text_length:
                break
            start += self.step

        logger.info(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

        return chunks


def chunk_text(
    text: str,
    size: int = config.CHUNK_SIZE,
    overlap: int = config.CHUNK_OVERLAP,
) -> List[str]:
    """Chunk text into plain strings (convenience function).

    Args:
        text: Text to chunk
        size: Window size in characters
        overlap: Characters shared by consecutive windows

    Returns:
        Ordered list of chunk strings
    """
    chunker = TextChunker(chunk_size=size, chunk_overlap=overlap)
    return [chunk.content for chunk in chunker.chunk_text(text)]
