"""Request body schemas for the HTTP API."""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from rag_studio import config
from rag_studio.errors import InvalidInputError


class ApiModel(BaseModel):
    """Accept both camelCase (wire) and snake_case field names."""

    model_config = ConfigDict(populate_by_name=True)


class ChunkRequest(ApiModel):
    text: StrictStr = Field(..., min_length=1, description="Document text")
    # Any value accepted; the chunker clamps or falls back to defaults
    chunk_size: Any = Field(default=config.DEFAULT_CHUNK_SIZE, alias="chunkSize")
    overlap: Any = Field(default=config.DEFAULT_CHUNK_OVERLAP)


class ChunkConfigRequest(ApiModel):
    chunk_size: Any = Field(default=None, alias="chunkSize")
    overlap: Any = Field(default=None)


class EmbedRequest(ApiModel):
    chunks: List[StrictStr] = Field(..., min_length=1)


class QueryRequest(ApiModel):
    query: StrictStr = Field(..., min_length=1)
    context: StrictStr = Field(..., min_length=1)


class KeywordsRequest(ApiModel):
    chunks: List[StrictStr] = Field(..., min_length=1)


class ValidateKeyRequest(ApiModel):
    api_key: Optional[StrictStr] = Field(default=None, alias="apiKey")


class SearchRequest(ApiModel):
    query: StrictStr = Field(..., min_length=1)
    top_k: StrictInt = Field(default=config.RETRIEVAL_TOP_K, ge=0, alias="topK")


class JumpRequest(ApiModel):
    step: StrictInt = Field(..., ge=1, le=4)


def _describe(error: ValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "body"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_body(model: type, data: Any):
    """Validate a JSON body against ``model``.

    Raises:
        InvalidInputError: If the body is not an object or fails validation
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid request: {_describe(e)}") from e
