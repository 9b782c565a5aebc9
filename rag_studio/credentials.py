"""API key resolution and validation.

A request-scoped key (header or body) wins over the process-wide default from
the environment. Keys are passed through to the model service and are never
stored or logged.
"""
from dataclasses import dataclass
from typing import Optional

import structlog

from rag_studio import config
from rag_studio.errors import AuthError, MissingCredentialError, UpstreamError
from rag_studio.llm_client import OpenAIClient, is_auth_failure

logger = structlog.get_logger()

# Wider net than the embed/query paths: any "invalid" wording means a bad key here
VALIDATION_AUTH_MARKERS = ("api key", "api_key", "authentication", "invalid", "incorrect")

_UNSET = object()


@dataclass
class KeyValidation:
    valid: bool
    message: str

    def to_dict(self) -> dict:
        return {"valid": self.valid, "message": self.message}


def resolve_credential(request_value: Optional[str], default=_UNSET) -> str:
    """Pick the credential for one request.

    Args:
        request_value: Key supplied with the request, if any
        default: Process-wide fallback (defaults to config.OPENAI_API_KEY)

    Returns:
        The credential to use

    Raises:
        MissingCredentialError: If neither source provides a key
    """
    if default is _UNSET:
        default = config.OPENAI_API_KEY

    for candidate in (request_value, default):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()

    raise MissingCredentialError(
        "No OpenAI API key provided. Enter an API key or set OPENAI_API_KEY."
    )


def has_valid_format(api_key: str) -> bool:
    return isinstance(api_key, str) and api_key.startswith(config.API_KEY_PREFIX)


async def validate_api_key(client: OpenAIClient) -> KeyValidation:
    """Check a key with the cheapest possible embedding call.

    Format is checked first, so malformed keys never reach the network.
    Upstream failures become ``valid=False`` results instead of exceptions.

    Args:
        client: Client bound to the key under test

    Returns:
        KeyValidation
    """
    if not has_valid_format(client.api_key):
        return KeyValidation(
            valid=False,
            message=f"Invalid API key format (must start with {config.API_KEY_PREFIX})",
        )

    try:
        await client.embeddings(["test"])
    except AuthError:
        logger.info("api_key_rejected")
        return KeyValidation(valid=False, message="Invalid API key.")
    except UpstreamError as e:
        # Only HTTP error bodies are inspected, not connection failures
        if e.upstream_status is not None and is_auth_failure(
            e.upstream_status, e.message, VALIDATION_AUTH_MARKERS
        ):
            logger.info("api_key_rejected")
            return KeyValidation(valid=False, message="Invalid API key.")
        logger.warning("api_key_validation_failed", error=e.message)
        return KeyValidation(
            valid=False,
            message="Could not validate the API key. Check your network connection.",
        )

    logger.info("api_key_validated")
    return KeyValidation(valid=True, message="API key is valid.")
