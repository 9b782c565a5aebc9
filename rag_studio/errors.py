"""Error taxonomy for RAG Studio.

Every error raised by the pipeline carries the HTTP status it maps to, so the
Quart error handler can turn it into a JSON response without a lookup table.
"""
from typing import Any, Dict, Optional


class RagStudioError(Exception):
    """Base exception for all pipeline errors."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a JSON-ready response body."""
        return {
            "error": self.message,
            "code": self.error_code,
            **self.details,
        }


class InvalidInputError(RagStudioError):
    """Malformed or missing request fields."""

    status_code = 400
    error_code = "invalid_input"


class MissingCredentialError(RagStudioError):
    """No API key in the request and no process-wide default."""

    status_code = 400
    error_code = "missing_credential"


class AuthError(RagStudioError):
    """The upstream model service rejected the API key."""

    status_code = 401
    error_code = "auth_error"


class UpstreamError(RagStudioError):
    """Network failure, rate limit or malformed upstream response."""

    status_code = 500
    error_code = "upstream_error"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(message)


class ResourceLimitError(RagStudioError):
    """File size, text size or chunk count above a fixed ceiling."""

    status_code = 400
    error_code = "resource_limit"

    def __init__(self, message: str, limit: float, actual: float):
        self.limit = limit
        self.actual = actual
        super().__init__(message, details={"limit": limit, "actual": actual})


class StageError(RagStudioError):
    """Pipeline action not allowed in the session's current stage."""

    status_code = 409
    error_code = "stage_error"


class SessionNotFoundError(RagStudioError):
    status_code = 404
    error_code = "session_not_found"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
