"""Text chunking with overlap for RAG pipeline.

Implements character-based sliding-window chunking to avoid tokenizer
dependencies. Windows are cut at fixed character offsets and trimmed, so the
same input always yields the same chunks.
"""
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError

logger = structlog.get_logger()


def _coerce_int(value: Any, default: int) -> int:
    """Read an integer from loosely typed input, falling back to ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
        try:
            number = float(value.strip())
        except ValueError:
            return default
        return int(number) if math.isfinite(number) else default
    return default


@dataclass(frozen=True)
class ChunkConfig:
    """Chunk size and overlap, both in characters."""

    chunk_size: int = config.DEFAULT_CHUNK_SIZE
    overlap: int = config.DEFAULT_CHUNK_OVERLAP

    def __post_init__(self):
        if self.chunk_size < 1:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if not 0 <= self.overlap < self.chunk_size:
            raise ValueError(
                f"Overlap ({self.overlap}) must be in [0, chunk size "
                f"({self.chunk_size}))"
            )

    @classmethod
    def from_values(cls, chunk_size: Any = None, overlap: Any = None) -> "ChunkConfig":
        """Build a config from user input, clamping into the allowed ranges.

        Non-numeric values fall back to the defaults (500 / 100). The chunk
        size is clamped to [100, 2000] and the overlap to [0, chunk_size - 1].

        Args:
            chunk_size: Requested chunk size (int, numeric string, or None)
            overlap: Requested overlap (int, numeric string, or None)

        Returns:
            A valid ChunkConfig
        """
        size = _coerce_int(chunk_size, config.DEFAULT_CHUNK_SIZE)
        size = max(config.MIN_CHUNK_SIZE, min(config.MAX_CHUNK_SIZE, size))

        step_overlap = _coerce_int(overlap, config.DEFAULT_CHUNK_OVERLAP)
        step_overlap = max(0, min(size - 1, step_overlap))

        return cls(chunk_size=size, overlap=step_overlap)

    def to_dict(self) -> dict:
        return {"chunkSize": self.chunk_size, "overlap": self.overlap}


@dataclass
class ChunkingResult:
    """Chunks produced from one document under one config."""

    chunks: List[str]
    config: ChunkConfig
    truncated: bool = False
    text_length: int = 0
    stats: dict = field(default_factory=dict)

    @property
    def warning(self) -> Optional[str]:
        if not self.truncated:
            return None
        return (
            f"Chunk limit of {config.MAX_CHUNKS} reached; "
            "the remainder of the document was not chunked."
        )


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_config: Optional[ChunkConfig] = None,
        max_chunks: int = config.MAX_CHUNKS,
    ):
        """Initialize the text chunker.

        Args:
            chunk_config: Chunk size and overlap (defaults to 500 / 100)
            max_chunks: Hard ceiling on the number of chunks produced
        """
        self.config = chunk_config or ChunkConfig()
        self.max_chunks = max_chunks

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    @property
    def chunk_size(self) -> int:
        return self.config.chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self.config.overlap

    def chunk_text(self, text: str) -> ChunkingResult:
        """Split text into overlapping, trimmed chunks.

        Args:
            text: Text to chunk

        Returns:
            ChunkingResult with chunks in document order

        Raises:
            InvalidInputError: If text is not a string or is empty
        """
        if not isinstance(text, str):
            raise InvalidInputError("Text must be a string")
        if not text:
            raise InvalidInputError("Text is empty")

        text_length = len(text)
        chunks: List[str] = []
        start = 0

        while start < text_length and len(chunks) < self.max_chunks:
            end = min(start + self.chunk_size, text_length)

            chunk_content = text[start:end].strip()
            if chunk_content:
                chunks.append(chunk_content)

            # Move to next chunk with overlap; always make forward progress
            next_start = end - self.chunk_overlap
            start = end if next_start <= start else next_start

        truncated = start < text_length
        if truncated:
            logger.warning(
                "chunk_limit_reached",
                max_chunks=self.max_chunks,
                text_length=text_length,
                chars_dropped=text_length - start,
            )

        logger.info(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

        return ChunkingResult(
            chunks=chunks,
            config=self.config,
            truncated=truncated,
            text_length=text_length,
            stats=self.get_chunk_stats(chunks),
        )

    def get_chunk_stats(self, chunks: List[str]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of chunk strings

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "overlap": self.chunk_overlap,
            }

        chunk_sizes = [len(c) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }


def chunk_document(text: str, chunk_size: Any = None, overlap: Any = None) -> ChunkingResult:
    """Clamp the requested config and chunk ``text`` with it.

    Args:
        text: Text to chunk
        chunk_size: Requested chunk size, clamped to [100, 2000]
        overlap: Requested overlap, clamped to [0, chunk_size - 1]

    Returns:
        ChunkingResult
    """
    chunker = TextChunker(ChunkConfig.from_values(chunk_size, overlap))
    return chunker.chunk_text(text)


# Convenience function
def chunk_text(
    text: str,
    chunk_size: Any = config.DEFAULT_CHUNK_SIZE,
    overlap: Any = config.DEFAULT_CHUNK_OVERLAP,
) -> List[str]:
    """Chunk text and return only the chunk strings (convenience function).

    Args:
        text: Text to chunk
        chunk_size: Requested chunk size
        overlap: Requested overlap

    Returns:
        List of chunk strings
    """
    return chunk_document(text, chunk_size, overlap).chunks
