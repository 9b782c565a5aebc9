"""In-memory vector store with brute-force cosine similarity search.

Handles:
- Binding chunk text to its embedding under a positional id
- Cosine similarity between a query vector and stored vectors
- Stable top-K ranking

Session-scale stores hold at most a few thousand vectors, so every search is
an exact O(N) scan over a numpy matrix.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError

logger = structlog.get_logger()


@dataclass(frozen=True)
class VectorStoreEntry:
    """A chunk bound to its embedding."""

    id: int
    text: str
    embedding: Tuple[float, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "embedding": list(self.embedding)}


@dataclass(frozen=True)
class SearchResult:
    """A store entry scored against a query vector."""

    id: int
    text: str
    embedding: Tuple[float, ...]
    similarity: float

    def to_dict(self, include_embedding: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "text": self.text,
            "similarity": round(self.similarity, 6),
        }
        if include_embedding:
            data["embedding"] = list(self.embedding)
        return data


def cosine_similarity(
    vec_a: Optional[Sequence[float]], vec_b: Optional[Sequence[float]]
) -> float:
    """Cosine similarity of two vectors.

    Degenerate inputs (missing, empty, unequal length, zero norm) score 0.0.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Similarity in [-1, 1]
    """
    if vec_a is None or vec_b is None:
        return 0.0
    if len(vec_a) == 0 or len(vec_a) != len(vec_b):
        return 0.0

    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0 or not np.isfinite(denominator):
        return 0.0

    return float(np.clip(np.dot(a, b) / denominator, -1.0, 1.0))


class VectorStore:
    """Ordered, immutable collection of VectorStoreEntry."""

    def __init__(self, entries: Sequence[VectorStoreEntry] = ()):
        self._entries: Tuple[VectorStoreEntry, ...] = tuple(entries)
        self._matrix: Optional[np.ndarray] = None

    @classmethod
    def from_embeddings(
        cls, chunks: Sequence[str], embeddings: Sequence[Sequence[float]]
    ) -> "VectorStore":
        """Build a store from positionally aligned chunks and embeddings.

        Args:
            chunks: Chunk texts in document order
            embeddings: One vector per chunk, same order

        Returns:
            VectorStore whose entry ids are 0..N-1

        Raises:
            InvalidInputError: If the two sequences differ in length
        """
        if len(chunks) != len(embeddings):
            raise InvalidInputError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )

        entries = [
            VectorStoreEntry(id=index, text=text, embedding=tuple(float(v) for v in vector))
            for index, (text, vector) in enumerate(zip(chunks, embeddings))
        ]

        logger.info(
            "vector_store_built",
            entry_count=len(entries),
            dimension=len(entries[0].embedding) if entries else 0,
        )

        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[VectorStoreEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> VectorStoreEntry:
        return self._entries[index]

    @property
    def entries(self) -> Tuple[VectorStoreEntry, ...]:
        return self._entries

    @property
    def dimension(self) -> int:
        return len(self._entries[0].embedding) if self._entries else 0

    def _get_matrix(self) -> Optional[np.ndarray]:
        """Stack embeddings into a matrix, or None if dimensions are ragged."""
        if self._matrix is None:
            lengths = {len(entry.embedding) for entry in self._entries}
            if len(lengths) != 1:
                return None
            self._matrix = np.asarray(
                [entry.embedding for entry in self._entries], dtype=np.float64
            )
        return self._matrix

    def _score(self, query_embedding: Optional[Sequence[float]]) -> List[float]:
        matrix = self._get_matrix()
        if matrix is None:
            return [cosine_similarity(query_embedding, e.embedding) for e in self._entries]
        if query_embedding is None or len(query_embedding) != matrix.shape[1]:
            return [0.0] * len(self._entries)

        query = np.asarray(query_embedding, dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
        return np.clip(scores, -1.0, 1.0).tolist()

    def search(
        self, query_embedding: Optional[Sequence[float]], k: int = config.RETRIEVAL_TOP_K
    ) -> List[SearchResult]:
        """Rank every entry against a query vector and return the top ``k``.

        Ties keep the original id order.

        Args:
            query_embedding: Query vector
            k: Number of results to return (>= 0)

        Returns:
            Up to ``k`` SearchResult objects, most similar first

        Raises:
            InvalidInputError: If k is negative
        """
        if isinstance(k, bool) or not isinstance(k, int) or k < 0:
            raise InvalidInputError(f"k must be a non-negative integer, got {k!r}")
        if not self._entries:
            logger.info("empty_store_no_results")
            return []

        scores = self._score(query_embedding)
        scored = [
            SearchResult(
                id=entry.id,
                text=entry.text,
                embedding=entry.embedding,
                similarity=float(score),
            )
            for entry, score in zip(self._entries, scores)
        ]
        # sorted() is stable with reverse=True, equal scores stay in id order
        ranked = sorted(scored, key=lambda r: r.similarity, reverse=True)[:k]

        logger.debug(
            "vector_search_completed",
            store_size=len(self._entries),
            k=k,
            top_similarity=ranked[0].similarity if ranked else None,
        )

        return ranked

    def to_list(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]


def search(
    query_embedding: Optional[Sequence[float]],
    store: Optional[VectorStore],
    k: int = config.RETRIEVAL_TOP_K,
) -> List[SearchResult]:
    """Search ``store`` for the ``k`` entries most similar to the query.

    Args:
        query_embedding: Query vector
        store: Vector store (None is treated as empty)
        k: Number of results

    Returns:
        Ranked SearchResult list
    """
    if store is None:
        return []
    return store.search(query_embedding, k)
