"""Conversation memory for per-document Q&A history."""
from docqa.memory.manager import ConversationManager

__all__ = ["ConversationManager"]
