"""Conversation memory manager.

Selects and renders the recent question/answer history of a document for
inclusion in the answer prompt.
"""
from typing import List, Optional, Sequence
import structlog

from docqa import config
from docqa.models import HistoryEntry
from docqa.store import DocumentStore

logger = structlog.get_logger()

NO_HISTORY_MARKER = "None"


class ConversationManager:
    """Manages per-document conversation history."""

    def __init__(self, store: DocumentStore, context_window_size: Optional[int] = None):
        """Initialize the conversation manager.

        Args:
            store: Document store holding the histories
            context_window_size: Number of recent exchanges to include in context
        """
        self.store = store
        self.context_window_size = (
            config.HISTORY_WINDOW if context_window_size is None else context_window_size
        )

    def recent_history(
        self, document_id: str, limit: Optional[int] = None
    ) -> List[HistoryEntry]:
        """Get the most recent exchanges for a document, oldest first.

        Args:
            document_id: Document to read history from
            limit: Maximum number of exchanges (defaults to context_window_size)

        Raises:
            NotFound: If the document does not exist
        """
        limit = self.context_window_size if limit is None else limit
        history = self.store.get(document_id).history
        recent = history[-limit:] if limit > 0 else []
        logger.debug(
            "conversation_history_retrieved",
            document_id=document_id,
            count=len(recent),
        )
        return list(recent)

    @staticmethod
    def format_history(entries: Sequence[HistoryEntry]) -> str:
        """Render exchanges as alternating ``Q:``/``A:`` pairs."""
        if not entries:
            return NO_HISTORY_MARKER
        return "\n\n".join(f"Q: {e.question}\nA: {e.answer}" for e in entries)

    def record(self, document_id: str, question: str, answer: str) -> List[HistoryEntry]:
        """Append an exchange and return the document's full history."""
        return self.store.append_history(
            document_id, HistoryEntry(question=question, answer=answer)
        )
