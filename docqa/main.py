"""Quart application exposing document upload and question answering."""
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from quart import Quart, jsonify, request
import structlog

from docqa import config
from docqa.errors import DocQAError
from docqa.llm_client import ollama_client
from docqa.rag.answerer import Answerer
from docqa.rag.chunker import TextChunker
from docqa.rag.embedder import EmbeddingGateway
from docqa.rag.extractor import TextExtractor
from docqa.rag.ingest import IngestPipeline
from docqa.store import DocumentStore, get_document_store

# Configure structured logging
logging.basicConfig(format="%(message)s", level=config.LOG_LEVEL)
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

STATUS_BY_KIND = {
    "EmptyQuestion": 400,
    "UnsupportedFormat": 400,
    "ExtractionFailure": 400,
    "NotFound": 404,
    "DuplicateId": 409,
    "ExternalCapabilityFailure": 502,
    "UnrecognizedResponseShape": 502,
    "PersistenceFailure": 500,
}


class AskRequest(BaseModel):
    """Body of ``POST /ask``."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(default="", alias="docId")
    question: str = Field(default="", max_length=config.MAX_QUESTION_CHARS)


def create_app(
    store: Optional[DocumentStore] = None,
    embedding_capability: Any = None,
    generation_capability: Any = None,
    extractor: Optional[TextExtractor] = None,
    chunker: Optional[TextChunker] = None,
) -> Quart:
    """Build the application around a document store and LLM backends.

    Args:
        store: Document store (default: process-wide store at config.STORAGE_PATH)
        embedding_capability: Object with async ``embeddings(prompt)``
        generation_capability: Object with async ``generate(prompt)``
        extractor: Text extractor for uploads
        chunker: Chunker for uploads (default sizes from config)
    """
    app = Quart(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES

    store = store if store is not None else get_document_store()
    gateway = EmbeddingGateway(embedding_capability or ollama_client)
    generator = generation_capability or ollama_client
    pipeline = IngestPipeline(store, gateway=gateway, extractor=extractor, chunker=chunker)
    answerer = Answerer(store, gateway=gateway, generator=generator)
    health_backend = generator if hasattr(generator, "list_models") else ollama_client

    @app.errorhandler(DocQAError)
    async def handle_docqa_error(error: DocQAError):
        status = STATUS_BY_KIND.get(error.kind, 500)
        log = logger.warning if status < 500 else logger.error
        log(
            "request_failed",
            kind=error.kind,
            message=error.message,
            status=status,
            path=request.path,
        )
        return jsonify(error.to_dict()), status

    @app.route("/upload", methods=["POST"])
    async def upload():
        """Upload a document (multipart field ``file``).

        Returns JSON:
        {"success": true, "docId": "...", "filename": "...", "chunksCount": 3}
        """
        files = await request.files
        upload_file = files.get("file")
        if upload_file is None or not upload_file.filename:
            return jsonify({"success": False, "error": "BadRequest", "message": "No file uploaded"}), 400

        content = upload_file.read()
        result = await pipeline.ingest(content, upload_file.filename)

        logger.info(
            "upload_completed",
            document_id=result.document_id,
            filename=result.filename,
            chunk_count=result.chunk_count,
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/documents", methods=["GET"])
    async def list_documents():
        """List stored documents in upload order."""
        docs = [summary.to_dict() for summary in store.list()]
        return jsonify({"success": True, "docs": docs})

    @app.route("/documents/<doc_id>/history", methods=["GET"])
    async def document_history(doc_id: str):
        """Full Q&A history of one document."""
        document = store.get(doc_id)
        return jsonify({
            "success": True,
            "history": [entry.to_dict() for entry in document.history],
        })

    @app.route("/ask", methods=["POST"])
    async def ask():
        """Answer a question about an uploaded document.

        Expects JSON body:
        {"docId": "1700000000000", "question": "What is this about?"}

        Returns JSON:
        {"success": true, "answer": "...", "history": [...]}
        """
        data = await request.get_json(silent=True) or {}
        try:
            body = AskRequest.model_validate(data)
        except ValidationError as e:
            logger.warning("ask_request_invalid", errors=e.errors())
            return jsonify({
                "success": False,
                "error": "BadRequest",
                "message": f"Question too long (max {config.MAX_QUESTION_CHARS} characters)"
                if any(err.get("loc") == ("question",) for err in e.errors())
                else "Invalid request body",
            }), 400

        logger.info(
            "ask_request_received",
            document_id=body.document_id,
            question_length=len(body.question),
        )
        result = await answerer.ask(body.document_id, body.question)
        return jsonify({
            "success": True,
            "answer": result.answer,
            "history": [entry.to_dict() for entry in result.history],
        })

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - generation backend reachable and chat model present."""
        checks = {"status": "healthy", "ollama": False, "models": False}

        try:
            models = await health_backend.list_models()
            checks["ollama"] = True

            if config.CHAT_MODEL in models:
                checks["models"] = True
            else:
                checks["status"] = "unhealthy"
                checks["error"] = f"Missing chat model: {config.CHAT_MODEL}"

            status_code = 200 if checks["status"] == "healthy" else 503
            return jsonify(checks), status_code

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive", "documents": len(store)}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"success": False, "error": "NotFound", "message": "Not found"}), 404

    @app.errorhandler(413)
    async def too_large(error):
        return jsonify({
            "success": False,
            "error": "PayloadTooLarge",
            "message": f"Upload exceeds {config.MAX_UPLOAD_BYTES} bytes",
        }), 413

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"success": False, "error": "InternalError", "message": "Internal server error"}), 500

    return app


app = create_app()


if __name__ == "__main__":
    # For development - use hypercorn in production
    app.run(host=config.HOST, port=config.PORT, debug=True)
