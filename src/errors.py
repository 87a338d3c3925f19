"""Exception types shared across the RAG pipeline.

Every error raised by the core derives from RAGError. The HTTP layer maps
the subclasses to status codes and stream error events.
"""


class RAGError(Exception):
    """Base class for all pipeline errors."""


class InvalidArgumentError(RAGError, ValueError):
    """Raised when a caller supplies invalid parameters (e.g. chunk sizes)."""


class ExternalServiceError(RAGError):
    """Raised when the embedding, LLM, or web-search provider fails."""


class CorruptedIndexError(RAGError):
    """Raised when persisted vectors are unreadable or have the wrong dimension."""


class RoundLimitExceeded(RAGError):
    """Raised when the model keeps requesting tools past the round limit."""


class ToolArgumentsError(RAGError):
    """Raised when streamed tool-call arguments fail validation."""


class ExtractionError(RAGError):
    """Raised when text cannot be extracted from an uploaded file."""


class StreamClosedError(RAGError):
    """Raised when an event is written to an already closed stream."""
