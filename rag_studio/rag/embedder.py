"""Embedding adapter: ordered chunks in, aligned vectors out."""
from typing import List, Sequence

import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError, UpstreamError
from rag_studio.llm_client import OpenAIClient

logger = structlog.get_logger()


class Embedder:
    """Turns chunk texts into equal-length vectors via the embedding service.

    A batch of N inputs yields exactly N vectors in the same order, or the whole
    call fails. Large inputs are split into sequential requests so the
    provider's per-request input limit is never hit; requests never overlap,
    so vectors come back in input order.
    """

    def __init__(
        self,
        client: OpenAIClient,
        model: str = None,
        batch_size: int = None,
    ):
        self.client = client
        self.model = model or config.EMBEDDING_MODEL
        self.batch_size = batch_size or config.EMBEDDING_BATCH_SIZE

    async def embed(self, chunks: Sequence[str]) -> List[List[float]]:
        """Embed chunks, preserving order.

        Args:
            chunks: Chunk texts

        Returns:
            One vector per chunk

        Raises:
            InvalidInputError: If chunks is empty or holds non-strings
            AuthError: If the credential is rejected
            UpstreamError: On service failure or a count/dimension mismatch
        """
        if not chunks:
            raise InvalidInputError("No chunks provided")
        if not all(isinstance(chunk, str) for chunk in chunks):
            raise InvalidInputError("Every chunk must be a string")

        texts = list(chunks)
        embeddings: List[List[float]] = []

        logger.info(
            "embedding_started",
            model=self.model,
            chunk_count=len(texts),
            batch_size=self.batch_size,
        )

        for offset in range(0, len(texts), self.batch_size):
            batch = texts[offset : offset + self.batch_size]
            vectors = await self.client.embeddings(batch, model=self.model)
            if len(vectors) != len(batch):
                raise UpstreamError(
                    f"Embedding service returned {len(vectors)} vectors "
                    f"for {len(batch)} inputs"
                )
            embeddings.extend(vectors)

        dimensions = {len(vector) for vector in embeddings}
        if len(dimensions) != 1 or 0 in dimensions:
            raise UpstreamError(
                f"Embedding service returned inconsistent dimensions: {sorted(dimensions)}"
            )

        logger.info(
            "embedding_completed",
            model=self.model,
            count=len(embeddings),
            dimension=dimensions.pop(),
        )

        return embeddings

    async def embed_query(self, query: str) -> List[float]:
        """Embed a single query string."""
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Query is empty")
        vectors = await self.embed([query])
        return vectors[0]
