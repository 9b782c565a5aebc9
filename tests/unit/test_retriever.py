"""Tests for query retrieval and answer synthesis."""
import pytest

from rag_studio.errors import InvalidInputError
from rag_studio.rag.retriever import RetrievalAnswer, Retriever
from rag_studio.rag.store import VectorStore
from rag_studio.rag.synthesizer import SYSTEM_PROMPT


@pytest.fixture
async def store(embedder) -> VectorStore:
    chunks = ["apple orchards", "banana plantations", "cherry blossoms", "durian markets"]
    return VectorStore.from_embeddings(chunks, await embedder.embed(chunks))


async def test_search_ranks_matching_chunk_first(embedder, store):
    results = await Retriever(embedder).search("banana", store, top_k=2)
    assert len(results) == 2
    assert results[0].text == "banana plantations"


async def test_search_on_empty_store(embedder):
    assert await Retriever(embedder).search("banana", VectorStore()) == []


async def test_empty_query_rejected(embedder, store):
    with pytest.raises(InvalidInputError):
        await Retriever(embedder).search("  ", store)


async def test_answer_uses_joined_context(embedder, synthesizer, store, fake_openai):
    result = await Retriever(embedder, synthesizer).answer("cherry", store, top_k=2)

    assert result.answer == "Apples are red."
    assert result.context == f"{result.results[0].text}\n\n{result.results[1].text}"

    messages = fake_openai.requests[-1]["payload"]["messages"]
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert "cherry blossoms" in messages[1]["content"]
    assert "Question: cherry" in messages[1]["content"]


async def test_answer_without_context_skips_chat(embedder, synthesizer, fake_openai):
    result = await Retriever(embedder, synthesizer).answer("cherry", VectorStore())
    assert result.answer == ""
    assert not any(r["path"].endswith("/chat/completions") for r in fake_openai.requests)


async def test_answer_requires_synthesizer(embedder, store):
    with pytest.raises(ValueError):
        await Retriever(embedder).answer("cherry", store)


async def test_synthesizer_rejects_missing_inputs(synthesizer):
    with pytest.raises(InvalidInputError):
        await synthesizer.answer("", "context")
    with pytest.raises(InvalidInputError):
        await synthesizer.answer("question", "   ")


def test_to_dict_shape():
    assert RetrievalAnswer(query="q").to_dict() == {
        "query": "q",
        "results": [],
        "context": "",
        "answer": "",
    }
