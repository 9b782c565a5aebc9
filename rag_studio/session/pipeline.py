"""Pipeline session: the four-stage state machine of a RAG walk-through.

Stages run Upload -> Chunk -> Embed -> Retrieve. All invalidation rules live
here so that no caller can leave chunks and vectors out of step:

- a new document or a new chunk config replaces the chunks and drops the
  vector store,
- jumping back to a stage discards that stage's output and everything after
  it,
- an embedding result is only applied if the chunks it was computed from are
  still the session's current chunks.
"""
import uuid
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, List, Optional

import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError, RagStudioError, StageError
from rag_studio.rag.chunker import ChunkConfig, ChunkingResult, TextChunker
from rag_studio.rag.embedder import Embedder
from rag_studio.rag.extractor import Document
from rag_studio.rag.keywords import extract_keywords
from rag_studio.rag.retriever import RetrievalAnswer, Retriever
from rag_studio.rag.store import VectorStore

logger = structlog.get_logger()


class Stage(IntEnum):
    UPLOADED = 1
    CHUNKED = 2
    EMBEDDED = 3
    RETRIEVING = 4


class PipelineSession:
    """State of one user's walk through the pipeline."""

    def __init__(self, session_id: Optional[str] = None):
        self.id = session_id or str(uuid.uuid4())
        self.created_at = datetime.now(timezone.utc).isoformat()
        self.current_stage = Stage.UPLOADED
        self.document: Optional[Document] = None
        self.chunk_config = ChunkConfig()
        self.chunks: List[str] = []
        self.vector_store: Optional[VectorStore] = None
        self.last_chunking: Optional[ChunkingResult] = None

        # Bumped whenever the chunk list is replaced or cleared
        self.chunk_version = 0
        self._embedding_in_flight = False

    # -- internal mutation points ------------------------------------------

    def _replace_chunks(self, chunks: List[str]) -> None:
        self.chunks = chunks
        self.chunk_version += 1
        self.vector_store = None

    def _clear_chunks(self) -> None:
        self.last_chunking = None
        self._replace_chunks([])

    # -- stage 1: upload ---------------------------------------------------

    def set_document(self, document: Document) -> None:
        """Load a new document, discarding chunks and vectors of the old one.

        Raises:
            StageError: If the session is past the upload stage
        """
        if self.current_stage != Stage.UPLOADED:
            raise StageError("Go back to step 1 to upload a new document")

        self.document = document
        self._clear_chunks()

        logger.info(
            "session_document_loaded",
            session_id=self.id,
            filename=document.filename,
            text_length=len(document.text),
        )

    # -- stage 2: chunk ----------------------------------------------------

    def run_chunker(self) -> ChunkingResult:
        """Chunk the loaded document under the current config.

        A session past step 2 is moved back to step 2, since its vector store
        no longer matches the chunks.

        Raises:
            StageError: If no document is loaded
        """
        if self.document is None:
            raise StageError("Upload a document before chunking")

        result = TextChunker(self.chunk_config).chunk_text(self.document.text)
        self._replace_chunks(list(result.chunks))
        self.last_chunking = result
        if self.current_stage > Stage.CHUNKED:
            # Steps 3 and 4 need vectors for the current chunks
            self.current_stage = Stage.CHUNKED

        logger.info(
            "session_chunked",
            session_id=self.id,
            chunk_count=len(self.chunks),
            chunk_version=self.chunk_version,
            truncated=result.truncated,
        )

        return result

    def update_chunk_config(
        self, chunk_size: Any = None, overlap: Any = None
    ) -> Optional[ChunkingResult]:
        """Change chunk size / overlap, re-chunking if a document is loaded.

        Missing values keep their current setting; everything is clamped.

        Returns:
            The new ChunkingResult, or None if nothing was re-chunked
        """
        new_config = ChunkConfig.from_values(
            self.chunk_config.chunk_size if chunk_size is None else chunk_size,
            self.chunk_config.overlap if overlap is None else overlap,
        )
        changed = new_config != self.chunk_config
        self.chunk_config = new_config

        logger.info(
            "session_chunk_config_updated",
            session_id=self.id,
            changed=changed,
            **new_config.to_dict(),
        )

        if self.document is None or (not changed and self.chunks):
            return None
        return self.run_chunker()

    # -- stage 3: embed ----------------------------------------------------

    @property
    def embedding_in_flight(self) -> bool:
        return self._embedding_in_flight

    async def embed(self, embedder: Embedder) -> Optional[VectorStore]:
        """Embed the current chunks into a fresh vector store.

        The call is tagged with the chunk version at issue time. If the chunks
        change before the embeddings come back, the stale result is dropped,
        and so is a failure of the stale call.
        On failure the previous vector store is left untouched.

        Args:
            embedder: Embedding adapter bound to a credential

        Returns:
            The new VectorStore, or None if the result was stale

        Raises:
            StageError: If there are no chunks or an embedding call is running
        """
        if not self.chunks:
            raise StageError("Chunk the document before embedding")
        if self._embedding_in_flight:
            raise StageError("An embedding request is already in progress")

        version = self.chunk_version
        chunks = list(self.chunks)
        self._embedding_in_flight = True
        try:
            embeddings = await embedder.embed(chunks)
        except RagStudioError as e:
            if version == self.chunk_version:
                raise
            self._log_stale(version, error=str(e))
            return None
        finally:
            self._embedding_in_flight = False

        if version != self.chunk_version:
            self._log_stale(version)
            return None

        self.vector_store = VectorStore.from_embeddings(chunks, embeddings)

        logger.info(
            "session_embedded",
            session_id=self.id,
            entry_count=len(self.vector_store),
            dimension=self.vector_store.dimension,
        )

        return self.vector_store

    def _log_stale(self, issued_version: int, **extra) -> None:
        logger.warning(
            "stale_embedding_discarded",
            session_id=self.id,
            issued_version=issued_version,
            current_version=self.chunk_version,
            **extra,
        )

    # -- navigation --------------------------------------------------------

    def can_advance(self) -> bool:
        """Whether the current stage's output exists so "next" is allowed."""
        if self.current_stage == Stage.UPLOADED:
            return self.document is not None
        if self.current_stage == Stage.CHUNKED:
            return len(self.chunks) > 0
        if self.current_stage == Stage.EMBEDDED:
            return self.vector_store is not None and len(self.vector_store) > 0
        return False

    async def auto_run(self, embedder: Optional[Embedder] = None) -> None:
        """Produce the current stage's output if it does not exist yet.

        Chunking runs when a document is loaded and there are no chunks.
        Embedding runs when there are chunks, no vectors, and an embedder.
        """
        if self.current_stage >= Stage.CHUNKED and self.document is not None and not self.chunks:
            self.run_chunker()
        if (
            self.current_stage >= Stage.EMBEDDED
            and self.chunks
            and self.vector_store is None
            and embedder is not None
        ):
            await self.embed(embedder)

    async def next(self, embedder: Optional[Embedder] = None) -> Stage:
        """Advance one stage, then auto-run the new stage's work.

        The stage change is committed before auto-run, so a failed embedding
        leaves the session on stage 3 ready for a retry.

        Raises:
            StageError: If the current stage's output is missing
        """
        if self.current_stage == Stage.RETRIEVING:
            raise StageError("Already at the last step")
        if not self.can_advance():
            raise StageError(self._blocked_reason())

        self.current_stage = Stage(self.current_stage + 1)
        logger.info("session_stage_advanced", session_id=self.id, stage=self.current_stage.name)

        await self.auto_run(embedder)
        return self.current_stage

    def back(self) -> Stage:
        """Move one stage back without discarding anything."""
        if self.current_stage > Stage.UPLOADED:
            self.current_stage = Stage(self.current_stage - 1)
            logger.info("session_stage_back", session_id=self.id, stage=self.current_stage.name)
        return self.current_stage

    def jump_to(self, step: int) -> Stage:
        """Return to an earlier (or the current) step, discarding its state.

        - step 1 clears the document, chunks and vector store
        - step 2 clears chunks and vector store
        - step 3 clears the vector store
        - step 4 clears nothing

        Raises:
            InvalidInputError: If step is not 1-4
            StageError: If step is ahead of the current stage
        """
        if isinstance(step, bool) or not isinstance(step, int) or not 1 <= step <= 4:
            raise InvalidInputError(f"Step must be between 1 and 4, got {step!r}")
        if step > self.current_stage:
            raise StageError(f"Cannot jump ahead to step {step}")

        target = Stage(step)
        if target <= Stage.UPLOADED:
            self.document = None
        if target <= Stage.CHUNKED:
            self._clear_chunks()
        if target <= Stage.EMBEDDED:
            self.vector_store = None

        self.current_stage = target
        logger.info("session_stage_reset", session_id=self.id, stage=target.name)
        return target

    def reset(self) -> None:
        """Clear everything, including the chunk config."""
        self.document = None
        self.chunk_config = ChunkConfig()
        self._clear_chunks()
        self.current_stage = Stage.UPLOADED
        logger.info("session_reset", session_id=self.id)

    def _blocked_reason(self) -> str:
        if self.current_stage == Stage.UPLOADED:
            return "Upload a document first"
        if self.current_stage == Stage.CHUNKED:
            return "No chunks yet; chunk the document first"
        return "Vector store is empty; embed the chunks first"

    # -- stage 4: retrieve -------------------------------------------------

    async def retrieve(
        self, retriever: Retriever, query: str, top_k: int = config.RETRIEVAL_TOP_K
    ) -> RetrievalAnswer:
        """Answer a query from the session's vector store.

        Raises:
            StageError: If the session is not at the retrieval stage
        """
        if self.current_stage != Stage.RETRIEVING:
            raise StageError("Advance to step 4 before searching")
        if self.vector_store is None or len(self.vector_store) == 0:
            raise StageError("Vector store is empty; embed the chunks first")

        return await retriever.answer(query, self.vector_store, top_k=top_k)

    def suggest_queries(self) -> List[str]:
        return extract_keywords(self.chunks)

    # -- serialization -----------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Summary of the session without bulky text or vectors."""
        data = {
            "id": self.id,
            "createdAt": self.created_at,
            "currentStep": int(self.current_stage),
            "stage": self.current_stage.name.lower(),
            "canAdvance": self.can_advance(),
            "document": self.document.to_dict(include_text=False) if self.document else None,
            "chunkConfig": self.chunk_config.to_dict(),
            "chunkCount": len(self.chunks),
            "chunkVersion": self.chunk_version,
            "vectorCount": len(self.vector_store) if self.vector_store else 0,
            "dimension": self.vector_store.dimension if self.vector_store else 0,
            "embeddingInFlight": self._embedding_in_flight,
        }
        if self.last_chunking is not None and self.last_chunking.warning:
            data["warning"] = self.last_chunking.warning
        return data

    def export(self) -> Dict[str, Any]:
        """Full session dump, including text, chunks and embeddings."""
        store = self.vector_store
        return {
            "file": (
                {"name": self.document.filename, "size": self.document.size}
                if self.document
                else None
            ),
            "text": self.document.text if self.document else "",
            "chunks": list(self.chunks),
            "chunkConfig": self.chunk_config.to_dict(),
            "embeddings": [list(entry.embedding) for entry in store] if store else [],
            "vectorStore": store.to_list() if store else None,
            "currentStep": int(self.current_stage),
        }
