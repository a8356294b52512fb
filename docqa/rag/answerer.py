"""Retrieval-augmented answering over a stored document.

Flow for one question:
1. Validate the question and the document id
2. Embed the question and rank the document's chunks
3. Build a prompt from the top chunks and the recent Q&A history
4. Ask the generation backend and normalize whatever it returns
5. Record the exchange in the document's history
"""
import json
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence
import structlog

from docqa.errors import DocQAError, EmptyQuestion, ExternalCapabilityFailure
from docqa.llm_client import ollama_client
from docqa.memory import ConversationManager
from docqa.models import HistoryEntry
from docqa.rag.embedder import EmbeddingGateway
from docqa.rag.retriever import Retriever
from docqa.store import DocumentStore

logger = structlog.get_logger()

FALLBACK_DUMP_CHARS = 2000

PROMPT_TEMPLATE = """
You are a helpful assistant. Answer the user's question using ONLY the provided document content and any previous short Q&A history. If the answer isn't in the document, say you don't know and suggest where to look.

Document excerpts (most relevant first):
{excerpts}

Previous short Q&A history (if any):
{history}

User question:
{question}

Answer concisely and clearly. If you cite parts of the document, indicate short quotes or paraphrases and include no invented facts.
"""


@dataclass
class AnswerResult:
    answer: str
    history: List[HistoryEntry]


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _text_accessor(obj: Any) -> Optional[str]:
    text = _field(obj, "text")
    if callable(text):
        text = text()
    return text if isinstance(text, str) else None


def match_text_accessor(raw: Any) -> Optional[str]:
    """``raw.text``/``raw.text()`` or ``raw.response.text``/``raw.response.text()``."""
    if isinstance(raw, str):
        return None
    text = _text_accessor(raw)
    if text is not None:
        return text
    response = _field(raw, "response")
    if response is None or isinstance(response, str):
        return None
    return _text_accessor(response)


def match_raw_string(raw: Any) -> Optional[str]:
    return raw if isinstance(raw, str) else None


def match_response_field(raw: Any) -> Optional[str]:
    """Ollama ``/api/generate``: ``{"response": "..."}``."""
    response = _field(raw, "response")
    return response if isinstance(response, str) else None


def match_message_content(raw: Any) -> Optional[str]:
    """Ollama ``/api/chat``: ``{"message": {"content": "..."}}``."""
    content = _field(_field(raw, "message"), "content")
    return content if isinstance(content, str) else None


def match_output_content(raw: Any) -> Optional[str]:
    """``{"output": [{"content": [{"text": "..."}]}]}``."""
    output = _field(raw, "output")
    if not isinstance(output, (list, tuple)) or not output:
        return None
    content = _field(output[0], "content")
    if not isinstance(content, (list, tuple)) or not content:
        return None
    text = _field(content[0], "text")
    return text if isinstance(text, str) else None


GENERATION_MATCHERS: Sequence[Callable[[Any], Optional[str]]] = (
    match_text_accessor,
    match_raw_string,
    match_response_field,
    match_message_content,
    match_output_content,
)


def normalize_generation(raw: Any) -> str:
    """Best-effort plain text from a generation response. Never raises."""
    for matcher in GENERATION_MATCHERS:
        try:
            text = matcher(raw)
        except Exception as e:
            logger.debug("generation_matcher_failed", matcher=matcher.__name__, error=str(e))
            continue
        if text is not None:
            return text

    logger.warning("generation_response_unrecognized", response_type=type(raw).__name__)
    try:
        return json.dumps(raw, default=str)[:FALLBACK_DUMP_CHARS]
    except (TypeError, ValueError):
        return str(raw)[:FALLBACK_DUMP_CHARS]


def build_prompt(excerpts: str, history: str, question: str) -> str:
    return PROMPT_TEMPLATE.format(excerpts=excerpts, history=history, question=question)


class Answerer:
    """Answers questions about a stored document."""

    def __init__(
        self,
        store: DocumentStore,
        gateway: Optional[EmbeddingGateway] = None,
        generator: Any = None,
        retriever: Optional[Retriever] = None,
        conversation: Optional[ConversationManager] = None,
    ):
        """Initialize the answerer.

        Args:
            store: Document store holding chunks and history
            gateway: Embedding gateway for the question
            generator: Object with an async ``generate(prompt)`` method
                (defaults to the shared Ollama client)
            retriever: Retriever override (built from store and gateway if omitted)
            conversation: History window override
        """
        self.store = store
        self.gateway = gateway or EmbeddingGateway()
        self.generator = generator or ollama_client
        self.retriever = retriever or Retriever(store, self.gateway)
        self.conversation = conversation or ConversationManager(store)

    async def prepare_prompt(self, document_id: str, question: str) -> str:
        """Build the grounded prompt for a question without calling the LLM."""
        results = await self.retriever.retrieve(document_id, question)
        excerpts = self.retriever.format_context(results)
        history = self.conversation.format_history(
            self.conversation.recent_history(document_id)
        )
        prompt = build_prompt(excerpts, history, question)

        logger.debug(
            "prompt_built",
            document_id=document_id,
            excerpt_count=len(results),
            prompt_length=len(prompt),
        )
        return prompt

    async def _generate(self, prompt: str) -> Any:
        try:
            return await self.generator.generate(prompt)
        except DocQAError:
            raise
        except Exception as e:
            logger.error(
                "generation_request_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ExternalCapabilityFailure(
                f"Generation request failed: {e}", detail=str(e)[:200]
            ) from e

    async def ask(self, document_id: str, question: str) -> AnswerResult:
        """Answer a question and record the exchange.

        Raises:
            EmptyQuestion: If the question is blank
            NotFound: If the document does not exist
            ExternalCapabilityFailure: If embedding or generation fails
            UnrecognizedResponseShape: If the question embedding is unusable
            PersistenceFailure: If the history could not be saved
        """
        if not question or not question.strip():
            raise EmptyQuestion("No question provided")

        # Resolve before any external call
        self.store.get(document_id)

        prompt = await self.prepare_prompt(document_id, question)
        raw = await self._generate(prompt)
        answer = normalize_generation(raw)

        history = self.conversation.record(document_id, question, answer)

        logger.info(
            "answer_generated",
            document_id=document_id,
            question_length=len(question),
            answer_length=len(answer),
            history_count=len(history),
        )
        return AnswerResult(answer=answer, history=history)

    async def answer(self, document_id: str, question: str) -> str:
        """Answer a question and return only the answer text."""
        result = await self.ask(document_id, question)
        return result.answer
