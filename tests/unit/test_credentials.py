"""Tests for API key resolution and validation."""
import httpx
import pytest

from rag_studio import config
from rag_studio.credentials import has_valid_format, resolve_credential, validate_api_key
from rag_studio.errors import MissingCredentialError
from rag_studio.llm_client import OpenAIClient


def _client(api_key, handler) -> OpenAIClient:
    return OpenAIClient(
        api_key=api_key, base_url="https://api.test/v1", transport=httpx.MockTransport(handler)
    )


def test_request_key_wins_over_default():
    assert resolve_credential("sk-request", default="sk-env") == "sk-request"


def test_default_used_when_request_has_none():
    assert resolve_credential(None, default="sk-env") == "sk-env"
    assert resolve_credential("   ", default="sk-env") == "sk-env"


def test_env_key_is_the_implicit_default(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-from-env")
    assert resolve_credential(None) == "sk-from-env"


def test_missing_everywhere(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    with pytest.raises(MissingCredentialError):
        resolve_credential(None)
    with pytest.raises(MissingCredentialError):
        resolve_credential("", default=None)


def test_format_check():
    assert has_valid_format("sk-abc")
    assert not has_valid_format("abc")
    assert not has_valid_format(None)


async def test_bad_format_never_hits_network():
    def handler(request):
        raise AssertionError("network must not be called")

    result = await validate_api_key(_client("pk-123", handler))
    assert result.valid is False
    assert "sk-" in result.message


async def test_valid_key(openai_client):
    result = await validate_api_key(openai_client)
    assert result.to_dict() == {"valid": True, "message": "API key is valid."}


async def test_rejected_key(fake_openai):
    client = OpenAIClient(
        api_key="sk-wrong", base_url="https://api.test/v1", transport=fake_openai.transport
    )
    result = await validate_api_key(client)
    assert result.to_dict() == {"valid": False, "message": "Invalid API key."}


async def test_invalid_wording_in_error_body_counts_as_bad_key():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Invalid credentials"}})

    result = await validate_api_key(_client("sk-123", handler))
    assert result.message == "Invalid API key."


async def test_network_failure_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("invalid host", request=request)

    result = await validate_api_key(_client("sk-123", handler))
    assert result.valid is False
    assert "network" in result.message
