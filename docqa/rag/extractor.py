"""Plain-text extraction from uploaded files.

Supports: TXT, Markdown, PDF (pypdf), DOCX (python-docx)
"""
from abc import ABC, abstractmethod
import codecs
from io import BytesIO
from typing import Dict, List

from docx import Document as DocxDocument
from pypdf import PdfReader
import structlog

from docqa.errors import ExtractionFailure, UnsupportedFormat

logger = structlog.get_logger()


class FormatExtractor(ABC):
    """Base class for single-format extractors."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Extract text from document content."""

    @abstractmethod
    def formats(self) -> List[str]:
        """Return the format names this extractor handles."""


class PlainTextExtractor(FormatExtractor):
    def extract(self, content: bytes) -> str:
        if content.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            return content.decode("utf-16")
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError:
            pass
        # latin-1 maps every byte, so this always succeeds
        return content.decode("latin-1")

    def formats(self) -> List[str]:
        return ["txt", "text", "md", "markdown"]


class PDFExtractor(FormatExtractor):
    def extract(self, content: bytes) -> str:
        reader = PdfReader(BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n\n".join(p for p in pages if p.strip())

    def formats(self) -> List[str]:
        return ["pdf"]


class DOCXExtractor(FormatExtractor):
    def extract(self, content: bytes) -> str:
        doc = DocxDocument(BytesIO(content))
        return "\n".join(p.text for p in doc.paragraphs if p.text.strip())

    def formats(self) -> List[str]:
        return ["docx"]


def normalize_format(format_hint: str) -> str:
    """``".PDF"``, ``"pdf"`` and ``"report.pdf"`` all become ``"pdf"``."""
    hint = (format_hint or "").strip().lower()
    if "." in hint:
        hint = hint.rsplit(".", 1)[1]
    return hint


class TextExtractor:
    """Dispatches raw bytes to the extractor for their format."""

    def __init__(self):
        self._by_format: Dict[str, FormatExtractor] = {}
        for extractor in (PlainTextExtractor(), PDFExtractor(), DOCXExtractor()):
            for fmt in extractor.formats():
                self._by_format[fmt] = extractor

    def supported_formats(self) -> List[str]:
        return sorted(self._by_format)

    def supports(self, format_hint: str) -> bool:
        return normalize_format(format_hint) in self._by_format

    def extract(self, content: bytes, format_hint: str) -> str:
        """Extract best-effort plain text.

        Args:
            content: Raw file bytes
            format_hint: File extension or file name

        Returns:
            Extracted text (possibly empty)

        Raises:
            UnsupportedFormat: If no extractor handles the format
            ExtractionFailure: If the bytes could not be parsed
        """
        fmt = normalize_format(format_hint)
        extractor = self._by_format.get(fmt)
        if extractor is None:
            raise UnsupportedFormat(
                f"Unsupported file type: {format_hint!r}. "
                f"Supported types: {', '.join(self.supported_formats())}"
            )

        try:
            text = extractor.extract(content)
        except Exception as e:
            logger.error(
                "text_extraction_failed",
                format=fmt,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ExtractionFailure(f"{fmt.upper()} extraction failed: {e}") from e

        text = text.replace("\r\n", "\n").replace("\r", "\n")
        logger.info("text_extracted", format=fmt, text_length=len(text))
        return text
