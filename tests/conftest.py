"""Shared fixtures: a fake OpenAI API served through httpx.MockTransport."""
import json
from typing import List

import httpx
import pytest

from rag_studio.llm_client import OpenAIClient
from rag_studio.rag.embedder import Embedder
from rag_studio.rag.synthesizer import AnswerSynthesizer

VALID_KEY = "sk-test-valid"

# Each vector counts these words, plus a constant component so no vector is zero
VOCABULARY = ["apple", "banana", "cherry", "durian"]


def fake_vector(text: str) -> List[float]:
    lowered = text.lower()
    return [float(lowered.count(word)) for word in VOCABULARY] + [0.1]


class FakeOpenAI:
    """Minimal stand-in for the embeddings and chat completions endpoints."""

    def __init__(self, valid_key: str = VALID_KEY):
        self.valid_key = valid_key
        self.requests: List[dict] = []
        self.answer = "Apples are red."
        self.fail_status = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content or b"{}")
        self.requests.append({"path": request.url.path, "payload": payload})

        if request.headers.get("Authorization") != f"Bearer {self.valid_key}":
            return httpx.Response(
                401, json={"error": {"message": "Incorrect API key provided"}}
            )
        if self.fail_status is not None:
            return httpx.Response(
                self.fail_status, json={"error": {"message": "Rate limit reached"}}
            )

        if request.url.path.endswith("/embeddings"):
            inputs = payload["input"]
            if isinstance(inputs, str):
                inputs = [inputs]
            data = [
                {"object": "embedding", "index": i, "embedding": fake_vector(text)}
                for i, text in enumerate(inputs)
            ]
            # Return out of order to check the client re-sorts by index
            return httpx.Response(200, json={"object": "list", "data": data[::-1]})

        if request.url.path.endswith("/chat/completions"):
            return httpx.Response(
                200,
                json={
                    "choices": [
                        {"index": 0, "message": {"role": "assistant", "content": self.answer}}
                    ]
                },
            )

        return httpx.Response(404, json={"error": {"message": "Unknown endpoint"}})

    @staticmethod
    def vector(text: str) -> List[float]:
        return fake_vector(text)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def embedding_calls(self) -> List[dict]:
        return [r for r in self.requests if r["path"].endswith("/embeddings")]


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def openai_client(fake_openai: FakeOpenAI) -> OpenAIClient:
    return OpenAIClient(
        api_key=VALID_KEY,
        base_url="https://api.test/v1",
        transport=fake_openai.transport,
    )


@pytest.fixture
def embedder(openai_client: OpenAIClient) -> Embedder:
    return Embedder(openai_client)


@pytest.fixture
def synthesizer(openai_client: OpenAIClient) -> AnswerSynthesizer:
    return AnswerSynthesizer(openai_client)


@pytest.fixture
def sample_text() -> str:
    return (
        "Apple trees grow in orchards. An apple a day keeps the doctor away. "
        "Banana plants are large herbs. Cherry blossoms bloom in spring. "
    ) * 20
