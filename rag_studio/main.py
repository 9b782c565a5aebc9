"""Main Quart application for RAG Studio."""
import asyncio
import logging
from typing import Optional

import structlog
from quart import Blueprint, Quart, current_app, jsonify, request

from rag_studio import config
from rag_studio.credentials import resolve_credential, validate_api_key
from rag_studio.errors import (
    InvalidInputError,
    MissingCredentialError,
    RagStudioError,
    ResourceLimitError,
)
from rag_studio.llm_client import OpenAIClient, create_openai_client
from rag_studio.rag.chunker import chunk_document
from rag_studio.rag.embedder import Embedder
from rag_studio.rag.extractor import Document, extract_document
from rag_studio.rag.keywords import extract_keywords
from rag_studio.rag.retriever import Retriever
from rag_studio.rag.synthesizer import AnswerSynthesizer
from rag_studio.schemas import (
    ChunkConfigRequest,
    ChunkRequest,
    EmbedRequest,
    JumpRequest,
    KeywordsRequest,
    QueryRequest,
    SearchRequest,
    ValidateKeyRequest,
    parse_body,
)
from rag_studio.session import SessionManager

# Configure structured logging
logging.basicConfig(level=config.LOG_LEVEL, format="%(message)s")
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

# Initialize Quart app
app = Quart(__name__)
app.config["MAX_CONTENT_LENGTH"] = config.MAX_REQUEST_BYTES
# Replaced with an httpx.MockTransport in tests
app.config["OPENAI_TRANSPORT"] = None

api = Blueprint("api", __name__)

# Initialize session registry (memory only)
session_manager = SessionManager()


def _openai_client(api_key: str) -> OpenAIClient:
    return create_openai_client(api_key, transport=current_app.config.get("OPENAI_TRANSPORT"))


def _request_client() -> OpenAIClient:
    """Client for the credential of the current request (header, else env)."""
    api_key = resolve_credential(request.headers.get(config.API_KEY_HEADER))
    return _openai_client(api_key)


def _optional_embedder() -> Optional[Embedder]:
    try:
        return Embedder(_request_client())
    except MissingCredentialError:
        return None


async def _json_body() -> dict:
    return await request.get_json(force=True, silent=True)


async def _read_upload() -> Document:
    """Extract text from the multipart ``file`` field."""
    files = await request.files
    upload = files.get("file")
    if upload is None or not upload.filename:
        raise InvalidInputError("No file was uploaded")

    content = upload.read()
    # pdfplumber is blocking
    return await asyncio.to_thread(extract_document, upload.filename, content, upload.mimetype)


# -- stateless pipeline endpoints ------------------------------------------


@api.route("/upload", methods=["POST"])
async def upload():
    """Extract text from an uploaded TXT, MD or PDF file.

    Expects multipart/form-data with a ``file`` field.

    Returns JSON:
    {
        "text": "extracted text",
        "filename": "notes.pdf",
        "size": 12345,
        "textLength": 6789
    }
    """
    document = await _read_upload()
    return jsonify(document.to_dict())


@api.route("/chunk", methods=["POST"])
async def chunk():
    """Split text into overlapping chunks.

    Expects JSON body:
    {
        "text": "document text",
        "chunkSize": 500,  // optional, clamped to [100, 2000]
        "overlap": 100     // optional, clamped to [0, chunkSize - 1]
    }
    """
    body = parse_body(ChunkRequest, await _json_body())
    result = chunk_document(body.text, body.chunk_size, body.overlap)

    response_data = {
        "chunks": result.chunks,
        **result.config.to_dict(),
        "stats": result.stats,
    }
    if result.warning:
        response_data["warning"] = result.warning

    return jsonify(response_data)


@api.route("/embed", methods=["POST"])
async def embed():
    """Embed chunks with the caller's API key.

    Expects JSON body: {"chunks": ["...", ...]}
    Returns JSON: {"embeddings": [[0.1, ...], ...]}
    """
    body = parse_body(EmbedRequest, await _json_body())
    embedder = Embedder(_request_client())
    embeddings = await embedder.embed(body.chunks)
    return jsonify({"embeddings": embeddings})


@api.route("/query", methods=["POST"])
async def query():
    """Answer a question from caller-supplied context.

    Expects JSON body: {"query": "question", "context": "retrieved text"}
    Returns JSON: {"answer": "..."}
    """
    body = parse_body(QueryRequest, await _json_body())
    synthesizer = AnswerSynthesizer(_request_client())
    answer = await synthesizer.answer(body.query, body.context)
    return jsonify({"answer": answer})


@api.route("/extract-keywords", methods=["POST"])
async def keywords():
    """Suggest up to five query keywords for a set of chunks."""
    body = parse_body(KeywordsRequest, await _json_body())
    return jsonify({"keywords": extract_keywords(body.chunks)})


@api.route("/validate-key", methods=["POST"])
async def validate_key():
    """Check an API key without storing it.

    The key comes from the X-OpenAI-API-Key header, else from {"apiKey": "..."}.
    Upstream failures are reported as {"valid": false}, never as errors.
    """
    body = parse_body(ValidateKeyRequest, await _json_body())
    api_key = request.headers.get(config.API_KEY_HEADER) or body.api_key

    if not api_key:
        return jsonify({"valid": False, "message": "No API key provided."}), 400

    result = await validate_api_key(_openai_client(api_key))
    return jsonify(result.to_dict())


@api.route("/health")
async def health():
    """Liveness probe."""
    return jsonify({"status": "ok"}), 200


# -- session endpoints -----------------------------------------------------


@api.route("/sessions", methods=["POST"])
async def create_session():
    """Create a new pipeline session at step 1."""
    session = session_manager.create_session()
    return jsonify(session.snapshot()), 201


@api.route("/sessions", methods=["GET"])
async def list_sessions():
    return jsonify({"sessions": session_manager.list_sessions()})


@api.route("/sessions/<session_id>", methods=["GET"])
async def get_session(session_id: str):
    return jsonify(session_manager.get_session(session_id).snapshot())


@api.route("/sessions/<session_id>", methods=["DELETE"])
async def delete_session(session_id: str):
    """Delete a session and all its state.

    Returns:
        204 No Content if successful
        404 Not Found if session doesn't exist
    """
    if session_manager.delete_session(session_id):
        return "", 204
    return jsonify({"error": "Session not found"}), 404


@api.route("/sessions/<session_id>/upload", methods=["POST"])
async def upload_to_session(session_id: str):
    """Load an uploaded file as the session's document (step 1 only)."""
    session = session_manager.get_session(session_id)
    document = await _read_upload()
    session.set_document(document)
    return jsonify(session.snapshot())


@api.route("/sessions/<session_id>/config", methods=["PUT"])
async def update_chunk_config(session_id: str):
    """Change chunk size / overlap; re-chunks when a document is loaded.

    Expects JSON body: {"chunkSize": 800, "overlap": 50}  // both optional
    """
    session = session_manager.get_session(session_id)
    body = parse_body(ChunkConfigRequest, await _json_body())
    result = session.update_chunk_config(body.chunk_size, body.overlap)

    response_data = session.snapshot()
    if result is not None:
        response_data["chunks"] = result.chunks
        response_data["stats"] = result.stats
    return jsonify(response_data)


@api.route("/sessions/<session_id>/chunk", methods=["POST"])
async def chunk_session(session_id: str):
    """(Re-)chunk the session's document under its current config."""
    session = session_manager.get_session(session_id)
    result = session.run_chunker()
    return jsonify({**session.snapshot(), "chunks": result.chunks, "stats": result.stats})


@api.route("/sessions/<session_id>/chunks", methods=["GET"])
async def get_session_chunks(session_id: str):
    session = session_manager.get_session(session_id)
    return jsonify({"chunks": session.chunks, "chunkVersion": session.chunk_version})


@api.route("/sessions/<session_id>/embed", methods=["POST"])
async def embed_session(session_id: str):
    """Embed the session's chunks into its vector store."""
    session = session_manager.get_session(session_id)
    embedder = Embedder(_request_client())
    store = await session.embed(embedder)

    response_data = session.snapshot()
    response_data["stale"] = store is None
    return jsonify(response_data)


@api.route("/sessions/<session_id>/next", methods=["POST"])
async def next_step(session_id: str):
    """Advance one step; entering step 3 embeds when a key is available."""
    session = session_manager.get_session(session_id)
    await session.next(embedder=_optional_embedder())
    return jsonify(session.snapshot())


@api.route("/sessions/<session_id>/back", methods=["POST"])
async def previous_step(session_id: str):
    session = session_manager.get_session(session_id)
    session.back()
    return jsonify(session.snapshot())


@api.route("/sessions/<session_id>/jump", methods=["POST"])
async def jump_to_step(session_id: str):
    """Return to an earlier step, discarding that step's state and later.

    Expects JSON body: {"step": 2}
    """
    session = session_manager.get_session(session_id)
    body = parse_body(JumpRequest, await _json_body())
    session.jump_to(body.step)
    return jsonify(session.snapshot())


@api.route("/sessions/<session_id>/reset", methods=["POST"])
async def reset_session(session_id: str):
    session = session_manager.get_session(session_id)
    session.reset()
    return jsonify(session.snapshot())


@api.route("/sessions/<session_id>/search", methods=["POST"])
async def search_session(session_id: str):
    """Retrieve the top-K chunks for a query and answer it.

    Expects JSON body:
    {
        "query": "question",
        "topK": 3  // optional
    }

    Returns JSON:
    {
        "query": "question",
        "results": [{"id": 0, "text": "...", "similarity": 0.87}, ...],
        "context": "joined chunk texts",
        "answer": "..."
    }
    """
    session = session_manager.get_session(session_id)
    body = parse_body(SearchRequest, await _json_body())

    client = _request_client()
    retriever = Retriever(Embedder(client), AnswerSynthesizer(client))
    result = await session.retrieve(retriever, body.query, top_k=body.top_k)

    logger.info(
        "session_search_completed",
        session_id=session_id,
        results=len(result.results),
        answer_length=len(result.answer),
    )

    return jsonify(result.to_dict())


@api.route("/sessions/<session_id>/keywords", methods=["GET"])
async def session_keywords(session_id: str):
    """Suggested queries from the session's chunks."""
    session = session_manager.get_session(session_id)
    return jsonify({"keywords": session.suggest_queries()})


@api.route("/sessions/<session_id>/export", methods=["GET"])
async def export_session(session_id: str):
    """Download the full session, embeddings included."""
    session = session_manager.get_session(session_id)
    return jsonify(session.export())


app.register_blueprint(api, url_prefix=config.API_PREFIX)


@app.errorhandler(RagStudioError)
async def pipeline_error(error: RagStudioError):
    """Map domain errors to JSON responses with their status code."""
    log = logger.error if error.status_code >= 500 else logger.warning
    log(
        "request_failed",
        path=request.path,
        error=error.message,
        error_type=type(error).__name__,
        status_code=error.status_code,
    )
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(404)
async def not_found(error):
    """Handle 404 errors."""
    return jsonify({"error": "Not found"}), 404


@app.errorhandler(413)
async def request_too_large(error):
    """Report bodies above MAX_CONTENT_LENGTH as a resource limit error."""
    actual = request.content_length
    limit_error = ResourceLimitError(
        f"File is too large. Maximum {config.MAX_UPLOAD_BYTES / 1024 / 1024:.1f}MB "
        f"is supported. Current size: {(actual or 0) / 1024 / 1024:.2f}MB",
        limit=config.MAX_UPLOAD_BYTES,
        actual=actual,
    )
    return await pipeline_error(limit_error)


@app.errorhandler(500)
async def internal_error(error):
    """Handle 500 errors."""
    logger.error("internal_server_error", error=str(error))
    return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    # For development - serve with hypercorn in production
    app.run(host=config.HOST, port=config.PORT, debug=True)
