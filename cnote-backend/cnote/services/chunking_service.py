"""
Splits note text into overlapping fixed-size chunks for embedding.
"""
import logging
import re
from typing import List, Optional

from cnote.config import settings

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Collapse every whitespace run to a single space and trim both ends."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def prepare_note_text(title: Optional[str], content: Optional[str]) -> str:
    """Text that gets indexed for a note: title, blank line, content."""
    return f"{title or ''}\n\n{content or ''}"


def chunk_text(
    text: str,
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
) -> List[dict]:
    """
    Split text into overlapping chunks.

    Args:
        text: Raw text; whitespace is normalized before splitting
        chunk_size: Maximum characters per chunk (default: settings.CHUNK_SIZE)
        overlap: Characters shared by consecutive chunks (default: settings.CHUNK_OVERLAP)

    Returns:
        List of dictionaries containing chunk information:
        - text: Exact slice of the normalized text
        - index: 0-based position of the chunk
        - start_char: Starting offset in the normalized text
        - end_char: Ending offset (exclusive) in the normalized text

    Raises:
        ValueError: If chunk_size is not positive or overlap is negative
    """
    chunk_size = settings.CHUNK_SIZE if chunk_size is None else chunk_size
    overlap = settings.CHUNK_OVERLAP if overlap is None else overlap
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must not be negative, got {overlap}")

    normalized = normalize_text(text)
    if not normalized:
        logger.debug("Empty text provided for chunking")
        return []

    length = len(normalized)
    if length <= chunk_size:
        return [{"text": normalized, "index": 0, "start_char": 0, "end_char": length}]

    chunks = []
    start = 0
    while True:
        end = min(start + chunk_size, length)

        # Prefer breaking at a word boundary in the back half of the window
        if end < length:
            last_space = normalized.rfind(" ", start, end + 1)
            if last_space > start + chunk_size / 2:
                end = last_space

        chunks.append({
            "text": normalized[start:end],
            "index": len(chunks),
            "start_char": start,
            "end_char": end,
        })

        if end >= length:
            break

        next_start = end - overlap
        if next_start <= start:
            next_start = start + 1
        start = next_start

    logger.info(
        "Chunked text: %d chars -> %d chunks (size=%d, overlap=%d)",
        length, len(chunks), chunk_size, overlap,
    )
    return chunks
