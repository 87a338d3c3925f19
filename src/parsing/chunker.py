"""Overlapping fixed-size text chunking.

Splits extracted document text into windows that become the unit of
embedding and retrieval.
"""

import logging
import math

from pydantic import BaseModel, Field

from src.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200

# Extra iterations allowed on top of the expected window count
_SAFETY_MARGIN = 100


class TextChunk(BaseModel):
    """A span of document text.

    Attributes:
        text: The chunk content (never empty).
        start_index: Offset of the first character in the source text.
        end_index: Offset one past the last character.
        chunk_index: Zero-based position among emitted chunks.
    """

    text: str = Field(..., min_length=1)
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    chunk_index: int = Field(..., ge=0)


def _validate_parameters(chunk_size: int, overlap: int) -> None:
    """Reject parameters that would stall the window walk.

    Raises:
        InvalidArgumentError: If chunk_size or overlap are out of range.
    """
    if chunk_size <= 0:
        raise InvalidArgumentError("chunk_size must be greater than 0")
    if overlap < 0:
        raise InvalidArgumentError("overlap must be non-negative")
    if overlap >= chunk_size:
        raise InvalidArgumentError(
            "overlap must be less than chunk_size to prevent infinite loops"
        )


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[TextChunk]:
    """Split text into overlapping windows.

    Each window covers ``[start, start + chunk_size)`` clipped to the text
    length. The next window starts ``overlap`` characters before the end of
    the current (unclipped) window, and always strictly after the current
    start.

    Args:
        text: Source text.
        chunk_size: Maximum characters per chunk.
        overlap: Characters shared between consecutive chunks.

    Returns:
        Chunks in document order. Empty text yields an empty list.

    Raises:
        InvalidArgumentError: If chunk_size <= 0 or overlap is not in
            ``[0, chunk_size)``.
    """
    _validate_parameters(chunk_size, overlap)

    if not text:
        return []

    text_length = len(text)
    max_iterations = math.ceil(text_length / (chunk_size - overlap)) + _SAFETY_MARGIN

    chunks: list[TextChunk] = []
    start = 0
    iterations = 0

    while start < text_length:
        if iterations >= max_iterations:
            logger.warning(
                f"Hit safety limit of {max_iterations} iterations "
                f"(text length {text_length}), truncating chunk output"
            )
            break
        iterations += 1

        window_end = start + chunk_size
        end = min(window_end, text_length)
        span = text[start:end]

        if span:
            chunks.append(
                TextChunk(
                    text=span,
                    start_index=start,
                    end_index=end,
                    chunk_index=len(chunks),
                )
            )

        next_start = window_end - overlap
        start = next_start if next_start > start else end

    return chunks
