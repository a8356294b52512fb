"""Error kinds raised by the document QA pipeline.

Every error carries a stable ``kind`` so the HTTP layer can render a
structured failure body without inspecting exception types.
"""
from typing import Any, Dict, Optional


class DocQAError(Exception):
    """Base class for all pipeline failures."""

    kind = "DocQAError"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        """Render as a structured failure response body."""
        body = {"success": False, "error": self.kind, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class UnsupportedFormat(DocQAError):
    kind = "UnsupportedFormat"


class ExtractionFailure(DocQAError):
    """A supported format whose bytes could not be parsed."""

    kind = "ExtractionFailure"


class UnrecognizedResponseShape(DocQAError):
    kind = "UnrecognizedResponseShape"


class EmptyQuestion(DocQAError):
    kind = "EmptyQuestion"


class NotFound(DocQAError):
    kind = "NotFound"


class DuplicateId(DocQAError):
    kind = "DuplicateId"


class PersistenceFailure(DocQAError):
    kind = "PersistenceFailure"


class ExternalCapabilityFailure(DocQAError):
    """The embedding or generation call itself failed (network, auth, ...)."""

    kind = "ExternalCapabilityFailure"
