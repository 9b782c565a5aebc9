"""Text extraction for uploaded documents (TXT, Markdown, PDF)."""
import io
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, Optional

import pdfplumber
import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError, ResourceLimitError

logger = structlog.get_logger()

SUPPORTED_EXTENSIONS = {".txt", ".md", ".pdf"}
TEXT_EXTENSIONS = {".txt", ".md"}
ALLOWED_MIME_TYPES = {
    "text/plain",
    "application/pdf",
    "text/markdown",
    "text/x-markdown",
    "application/octet-stream",
}
TEXT_MIME_TYPES = {"text/plain", "text/markdown", "text/x-markdown"}

UNSUPPORTED_MESSAGE = "Unsupported file type. Only TXT, PDF or MD files are allowed."


@dataclass
class Document:
    """Raw extracted text of one uploaded file."""

    text: str
    filename: str
    size: int

    def to_dict(self, include_text: bool = True) -> Dict[str, Any]:
        data = {"filename": self.filename, "size": self.size, "textLength": len(self.text)}
        if include_text:
            data["text"] = self.text
        return data


def _megabytes(value: int) -> float:
    return value / 1024 / 1024


def is_supported(filename: str, mimetype: Optional[str] = None) -> bool:
    """Accept by extension first, then by MIME type."""
    extension = PurePath(filename or "").suffix.lower()
    return extension in SUPPORTED_EXTENSIONS or (mimetype or "") in ALLOWED_MIME_TYPES


def _extract_pdf_text(content: bytes) -> str:
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        logger.error("pdf_parse_failed", error=str(e), error_type=type(e).__name__)
        raise InvalidInputError(f"Could not read PDF file: {e}") from e
    return "\n".join(pages)


def extract_document(filename: str, content: bytes, mimetype: Optional[str] = None) -> Document:
    """Extract text from an uploaded file.

    Blocking for PDFs; call through ``asyncio.to_thread`` from async code.

    Args:
        filename: Original file name (used to pick the parser)
        content: Raw file bytes
        mimetype: Declared content type

    Returns:
        Document with the extracted text

    Raises:
        InvalidInputError: Unsupported type, unreadable file, or no text
        ResourceLimitError: File or extracted text above 10MB
    """
    filename = filename or ""
    mimetype = (mimetype or "").split(";")[0].strip().lower()
    extension = PurePath(filename).suffix.lower()

    if not is_supported(filename, mimetype):
        raise InvalidInputError(UNSUPPORTED_MESSAGE)

    size = len(content)
    if size > config.MAX_UPLOAD_BYTES:
        raise ResourceLimitError(
            f"File is too large. Maximum {_megabytes(config.MAX_UPLOAD_BYTES):.1f}MB "
            f"is supported. Current size: {_megabytes(size):.2f}MB",
            limit=config.MAX_UPLOAD_BYTES,
            actual=size,
        )

    if extension == ".pdf":
        text = _extract_pdf_text(content)
    elif extension in TEXT_EXTENSIONS or mimetype in TEXT_MIME_TYPES:
        text = content.decode("utf-8", errors="replace")
    else:
        raise InvalidInputError(UNSUPPORTED_MESSAGE)

    if not text or not text.strip():
        raise InvalidInputError("Could not extract any text from the file.")

    if len(text) > config.MAX_TEXT_LENGTH:
        raise ResourceLimitError(
            f"File is too large. Maximum {_megabytes(config.MAX_TEXT_LENGTH):.1f}MB "
            f"is supported. Current size: {_megabytes(len(text)):.2f}MB",
            limit=config.MAX_TEXT_LENGTH,
            actual=len(text),
        )

    logger.info(
        "document_extracted",
        filename=filename,
        size=size,
        extension=extension,
        text_length=len(text),
    )

    return Document(text=text, filename=filename, size=size)
