"""Tests for the embedding adapter."""
import httpx
import pytest

from rag_studio.errors import AuthError, InvalidInputError, UpstreamError
from rag_studio.llm_client import OpenAIClient
from rag_studio.rag.embedder import Embedder


async def test_one_vector_per_chunk_in_order(embedder, fake_openai):
    chunks = ["apple pie", "banana split", "cherry tart"]
    vectors = await embedder.embed(chunks)
    assert vectors == [fake_openai.vector(chunk) for chunk in chunks]


async def test_large_inputs_are_batched_sequentially(openai_client, fake_openai):
    embedder = Embedder(openai_client, batch_size=2)
    chunks = [f"apple {i}" for i in range(5)]
    vectors = await embedder.embed(chunks)

    assert len(vectors) == 5
    calls = fake_openai.embedding_calls()
    assert [len(call["payload"]["input"]) for call in calls] == [2, 2, 1]
    assert [text for call in calls for text in call["payload"]["input"]] == chunks


@pytest.mark.parametrize("chunks", [[], ["ok", 3]])
async def test_invalid_chunks(embedder, chunks):
    with pytest.raises(InvalidInputError):
        await embedder.embed(chunks)


async def test_auth_error_propagates(fake_openai):
    client = OpenAIClient("sk-wrong", base_url="https://api.test/v1", transport=fake_openai.transport)
    with pytest.raises(AuthError):
        await Embedder(client).embed(["apple"])


async def test_count_mismatch_is_upstream_error():
    def handler(request):
        return httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0, 2.0]}]})

    client = OpenAIClient("sk-x", base_url="https://api.test/v1", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError):
        await Embedder(client).embed(["one", "two"])


async def test_inconsistent_dimensions_are_upstream_error():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "data": [
                    {"index": 0, "embedding": [1.0, 2.0]},
                    {"index": 1, "embedding": [1.0]},
                ]
            },
        )

    client = OpenAIClient("sk-x", base_url="https://api.test/v1", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError):
        await Embedder(client).embed(["one", "two"])


async def test_embed_query(embedder, fake_openai):
    assert await embedder.embed_query("cherry") == fake_openai.vector("cherry")
    with pytest.raises(InvalidInputError):
        await embedder.embed_query("   ")
