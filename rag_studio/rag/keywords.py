"""Frequency-based keyword extraction used to suggest queries."""
import re
from collections import Counter
from typing import List, Sequence

import structlog

from rag_studio import config

logger = structlog.get_logger()

# Runs of 2+ Hangul, Latin or digit characters
TOKEN_PATTERN = re.compile(r"[가-힣a-zA-Z0-9]{2,}")

KOREAN_STOP_WORDS = frozenset([
    "이", "가", "을", "를", "에", "의", "와", "과", "은", "는", "도", "로", "으로",
    "에서", "에게", "께", "한테", "더", "많이", "있다", "없다", "하다", "되다", "이다",
    "그", "그것", "이것", "저것", "그런", "이런", "저런", "그렇게", "이렇게", "저렇게",
    "때", "경우", "것", "수", "등", "및", "또한", "또", "그리고", "하지만", "그러나",
])

ENGLISH_STOP_WORDS = frozenset([
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "from", "as", "is", "was", "are", "were", "been", "be", "have", "has", "had",
    "do", "does", "did", "will", "would", "should", "could", "may", "might", "must",
    "this", "that", "these", "those", "it", "its", "they", "them", "their", "there",
    "what", "which", "who", "when", "where", "why", "how", "can", "cannot",
])

STOP_WORDS = KOREAN_STOP_WORDS | ENGLISH_STOP_WORDS


def extract_keywords(chunks: Sequence[str], limit: int = config.KEYWORD_COUNT) -> List[str]:
    """Return the most frequent non-stop-word tokens across all chunks.

    Ties are broken by the order in which tokens first appear.

    Args:
        chunks: Chunk texts
        limit: Maximum number of keywords

    Returns:
        Up to ``limit`` keyword strings, most frequent first
    """
    if not chunks:
        return []

    full_text = " ".join(chunk for chunk in chunks if isinstance(chunk, str)).lower()
    tokens = TOKEN_PATTERN.findall(full_text)

    # Counter keeps insertion order, so equal counts stay in first-seen order
    frequencies = Counter(token for token in tokens if token not in STOP_WORDS)
    ranked = sorted(frequencies.items(), key=lambda item: item[1], reverse=True)
    keywords = [token for token, _ in ranked[:limit]]

    logger.debug(
        "keywords_extracted",
        token_count=len(tokens),
        unique_terms=len(frequencies),
        keywords=keywords,
    )

    return keywords
