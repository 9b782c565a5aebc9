"""Retriever for semantic search over a session's vector store.

Handles:
- Query embedding generation
- Brute-force cosine search over the in-memory store
- Context assembly from the top-K chunks
- Answer generation from that context
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError
from rag_studio.rag.embedder import Embedder
from rag_studio.rag.store import SearchResult, VectorStore
from rag_studio.rag.synthesizer import AnswerSynthesizer

logger = structlog.get_logger()


@dataclass
class RetrievalAnswer:
    """Ranked chunks for a query and the answer generated from them."""

    query: str
    results: List[SearchResult] = field(default_factory=list)
    context: str = ""
    answer: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [result.to_dict() for result in self.results],
            "context": self.context,
            "answer": self.answer,
        }


class Retriever:
    """Semantic retriever for the RAG pipeline."""

    def __init__(
        self,
        embedder: Embedder,
        synthesizer: Optional[AnswerSynthesizer] = None,
        top_k: int = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Embedding adapter used for the query
            synthesizer: Answer adapter (only needed for answer())
            top_k: Number of results to retrieve (default from config)
        """
        self.embedder = embedder
        self.synthesizer = synthesizer
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k

    async def search(
        self,
        query: str,
        store: VectorStore,
        top_k: Optional[int] = None,
    ) -> List[SearchResult]:
        """Retrieve the chunks most similar to a query.

        Args:
            query: User query text
            store: Vector store to search
            top_k: Number of results to return (overrides default)

        Returns:
            List of SearchResult objects, most similar first

        Raises:
            InvalidInputError: If the query is empty
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Query is empty")

        top_k = self.top_k if top_k is None else top_k

        if store is None or len(store) == 0:
            logger.warning("empty_store_no_results")
            return []

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        query_embedding = await self.embedder.embed_query(query)
        results = store.search(query_embedding, top_k)

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_similarity=results[0].similarity if results else None,
        )

        return results

    @staticmethod
    def build_context(results: List[SearchResult]) -> str:
        """Join retrieved chunk texts into one context string."""
        return "\n\n".join(result.text for result in results)

    async def answer(
        self,
        query: str,
        store: VectorStore,
        top_k: Optional[int] = None,
    ) -> RetrievalAnswer:
        """Retrieve context for a query and generate an answer from it.

        Args:
            query: User query text
            store: Vector store to search
            top_k: Number of chunks to use as context

        Returns:
            RetrievalAnswer with ranked results, context and answer
        """
        if self.synthesizer is None:
            raise ValueError("Retriever was created without an answer synthesizer")

        results = await self.search(query, store, top_k=top_k)
        context = self.build_context(results)

        if not context:
            logger.info("no_relevant_context_found")
            return RetrievalAnswer(query=query, results=results)

        answer = await self.synthesizer.answer(query, context)

        return RetrievalAnswer(query=query, results=results, context=context, answer=answer)
