"""Chunk planner -- split transcript text into overlapping analysis windows.

Windows are ``chunk_size`` characters long. A window that would end
mid-sentence is snapped to the first sentence terminator (or, failing that,
newline) found between 100 characters before and 200 characters after the
nominal boundary. The next window starts ``chunk_overlap`` characters before
the previous one ended, so ``chunks[i].text[chunk_overlap:]`` continues
exactly where ``chunks[i - 1]`` stopped.

Only the literal ``.`` counts as a sentence terminator. Japanese ``。`` is
not searched for; all-Japanese transcripts therefore snap to newlines.
"""

from __future__ import annotations

import structlog

from src.app.minutes.schemas import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    TextChunk,
    validate_chunking,
)

logger = structlog.get_logger(__name__)

SNAP_LOOKBEHIND = 100
SNAP_LOOKAHEAD = 200
SENTENCE_TERMINATOR = "."


def _snap_boundary(text: str, nominal_end: int) -> int:
    """Return the snapped end offset for a window ending at nominal_end."""
    lo = max(nominal_end - SNAP_LOOKBEHIND, 0)
    hi = min(nominal_end + SNAP_LOOKAHEAD, len(text))

    for terminator in (SENTENCE_TERMINATOR, "\n"):
        pos = text.find(terminator, lo, hi)
        if pos != -1:
            return pos + 1
    return nominal_end


def split_text_into_chunks(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[TextChunk]:
    """Split text into overlapping chunks with ids 0..N-1.

    Args:
        text: Full transcript text.
        chunk_size: Nominal window length in characters.
        chunk_overlap: Characters shared by consecutive windows.

    Returns:
        Ordered list of TextChunk. Empty text yields an empty list.

    Raises:
        ValidationError: If chunk_overlap >= chunk_size or either is out of range.
    """
    validate_chunking(chunk_size, chunk_overlap)

    chunks: list[TextChunk] = []
    start = 0

    while start < len(text):
        if start + chunk_size >= len(text):
            chunks.append(TextChunk(id=len(chunks), text=text[start:]))
            break

        nominal_end = start + chunk_size
        end = _snap_boundary(text, nominal_end)
        if end - chunk_overlap <= start:
            end = nominal_end

        chunks.append(TextChunk(id=len(chunks), text=text[start:end]))
        start = end - chunk_overlap

    logger.debug(
        "chunking.split_completed",
        text_chars=len(text),
        chunks=len(chunks),
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
    )
    return chunks
