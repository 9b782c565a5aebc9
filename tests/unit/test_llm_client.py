"""Tests for the OpenAI-compatible client."""
import httpx
import pytest

from rag_studio import config
from rag_studio.errors import AuthError, UpstreamError
from rag_studio.llm_client import OpenAIClient, is_auth_failure


def _client(handler, api_key="sk-test-valid") -> OpenAIClient:
    return OpenAIClient(
        api_key=api_key,
        base_url="https://api.test/v1/",
        transport=httpx.MockTransport(handler),
    )


async def test_embeddings_are_returned_in_input_order(openai_client, fake_openai):
    vectors = await openai_client.embeddings(["apple", "banana banana"])
    assert vectors == [fake_openai.vector("apple"), fake_openai.vector("banana banana")]

    request = fake_openai.requests[-1]
    assert request["path"] == "/v1/embeddings"
    assert request["payload"]["model"] == config.EMBEDDING_MODEL


async def test_chat_returns_assistant_content(openai_client, fake_openai):
    content = await openai_client.chat(
        [{"role": "user", "content": "hi"}], temperature=0.7, max_tokens=500
    )
    assert content == "Apples are red."
    payload = fake_openai.requests[-1]["payload"]
    assert payload["max_tokens"] == 500
    assert payload["temperature"] == 0.7


async def test_rejected_key_raises_auth_error(fake_openai):
    client = OpenAIClient(
        api_key="sk-wrong", base_url="https://api.test/v1", transport=fake_openai.transport
    )
    with pytest.raises(AuthError):
        await client.embeddings(["apple"])


async def test_auth_marker_in_non_401_body_is_auth_error():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "You didn't provide an API key."}})

    with pytest.raises(AuthError):
        await _client(handler).chat([{"role": "user", "content": "hi"}])


async def test_rate_limit_is_upstream_error(openai_client, fake_openai):
    fake_openai.fail_status = 429
    with pytest.raises(UpstreamError) as excinfo:
        await openai_client.embeddings(["apple"])
    assert excinfo.value.upstream_status == 429
    assert "Rate limit" in excinfo.value.message


async def test_network_failure_is_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        await _client(handler).embeddings(["apple"])
    assert excinfo.value.upstream_status is None


async def test_non_json_body_is_upstream_error():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(UpstreamError):
        await _client(handler).embeddings(["apple"])


@pytest.mark.parametrize(
    "body",
    [
        {"object": "list"},
        {"data": [{"index": 0}]},
        {"choices": []},
    ],
)
async def test_malformed_payloads_are_upstream_errors(body):
    def handler(request):
        return httpx.Response(200, json=body)

    client = _client(handler)
    with pytest.raises(UpstreamError):
        if "choices" in body:
            await client.chat([{"role": "user", "content": "hi"}])
        else:
            await client.embeddings(["apple"])


def test_is_auth_failure():
    assert is_auth_failure(401, "")
    assert is_auth_failure(403, "")
    assert is_auth_failure(400, "Invalid API_KEY supplied")
    assert not is_auth_failure(429, "Rate limit reached")
    assert not is_auth_failure(None, "connection refused")
