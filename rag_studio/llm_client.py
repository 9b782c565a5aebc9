"""OpenAI-compatible API client wrapper with error handling."""
from typing import Dict, List, Optional

import httpx
import structlog

from rag_studio import config
from rag_studio.errors import AuthError, UpstreamError

logger = structlog.get_logger()

# Substrings that mark an upstream error as a credential problem
AUTH_ERROR_MARKERS = ("api key", "api_key", "authentication")


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of an OpenAI error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return response.text or response.reason_phrase


def is_auth_failure(status_code: Optional[int], message: str, markers=AUTH_ERROR_MARKERS) -> bool:
    """Check whether an upstream failure looks like a rejected credential."""
    if status_code in (401, 403):
        return True
    lowered = (message or "").lower()
    return any(marker in lowered for marker in markers)


class OpenAIClient:
    """Async client for an OpenAI-compatible embeddings / chat API."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Bearer credential for this client (never logged)
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.api_key = api_key
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, payload: Dict) -> Dict:
        """POST a JSON payload and return the decoded body.

        Raises:
            AuthError: If the service rejects the credential
            UpstreamError: On any other HTTP, network or decoding failure
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    headers=self._headers(),
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = _error_message(e.response)
            logger.error(
                "openai_http_error",
                path=path,
                status_code=status_code,
                error=message,
            )
            if is_auth_failure(status_code, message):
                raise AuthError(f"Invalid OpenAI API key: {message}") from e
            raise UpstreamError(
                message or f"Upstream request failed ({status_code})",
                upstream_status=status_code,
            ) from e

        except httpx.RequestError as e:
            logger.error("openai_connection_error", path=path, error=str(e), base_url=self.base_url)
            raise UpstreamError(f"Could not reach the model service: {e}") from e

        except ValueError as e:
            logger.error("openai_malformed_response", path=path, error=str(e))
            raise UpstreamError("Malformed response from the model service") from e

    async def embeddings(self, inputs: List[str], model: str = None) -> List[List[float]]:
        """Generate embeddings for a batch of texts.

        Args:
            inputs: Texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            One embedding per input, in input order

        Raises:
            AuthError: If the credential is rejected
            UpstreamError: On API errors or a malformed response
        """
        model = model or config.EMBEDDING_MODEL

        logger.debug("openai_embedding_request", model=model, input_count=len(inputs))

        data = await self._post("/embeddings", {"model": model, "input": inputs})

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise UpstreamError("Embedding response is missing 'data'")

        try:
            # The API tags each vector with the index of its input
            ordered = sorted(items, key=lambda item: item.get("index", 0))
            embeddings = [list(item["embedding"]) for item in ordered]
        except (AttributeError, KeyError, TypeError) as e:
            raise UpstreamError("Embedding response items are malformed") from e

        logger.debug(
            "openai_embedding_response",
            model=model,
            count=len(embeddings),
            dimension=len(embeddings[0]) if embeddings else 0,
        )

        return embeddings

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a chat completion request and return the assistant text.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config.CHAT_MODEL)
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum completion tokens

        Returns:
            Assistant message content

        Raises:
            AuthError: If the credential is rejected
            UpstreamError: On API errors or a malformed response
        """
        model = model or config.CHAT_MODEL

        payload = {"model": model, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        logger.info("openai_chat_request", model=model, message_count=len(messages))

        data = await self._post("/chat/completions", payload)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("Chat completion response is malformed") from e

        logger.info("openai_chat_response", model=model, response_length=len(content or ""))

        return content or ""


def create_openai_client(
    api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None
) -> OpenAIClient:
    """Create a client bound to one resolved credential."""
    return OpenAIClient(api_key=api_key, transport=transport)
