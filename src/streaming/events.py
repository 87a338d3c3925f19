"""Server-sent event types emitted while answering a question.

Every event serializes to a single ``data: {json}\\n\\n`` frame whose JSON
carries a ``type`` discriminator plus the event payload.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class StreamEventType(str, Enum):
    """Event types of the chat stream."""

    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    THINKING = "thinking"
    CONTENT = "content"
    DONE = "done"
    ERROR = "error"


TERMINAL_EVENT_TYPES = frozenset({StreamEventType.DONE.value, StreamEventType.ERROR.value})


class ToolStartEvent(BaseModel):
    """Emitted before a document search or web search runs."""

    type: Literal["tool_start"] = "tool_start"
    tool: str
    message: str


class ToolEndEvent(BaseModel):
    """Emitted after a tool finishes, with a result summary."""

    type: Literal["tool_end"] = "tool_end"
    tool: str
    message: str


class ThinkingEvent(BaseModel):
    type: Literal["thinking"] = "thinking"
    message: str = "Thinking..."


class ContentEvent(BaseModel):
    """A content delta from the model, in generation order."""

    type: Literal["content"] = "content"
    chunk: str = Field(..., min_length=1)


class DoneEvent(BaseModel):
    """Terminal success event."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["done"] = "done"
    has_context: bool = Field(..., alias="hasContext")
    chunks_used: int = Field(..., ge=0, alias="chunksUsed")
    used_web_search: bool = Field(..., alias="usedWebSearch")


class ErrorEvent(BaseModel):
    """Terminal failure event."""

    type: Literal["error"] = "error"
    error: str


StreamEvent = Annotated[
    ToolStartEvent | ToolEndEvent | ThinkingEvent | ContentEvent | DoneEvent | ErrorEvent,
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def is_terminal(event: StreamEvent) -> bool:
    return event.type in TERMINAL_EVENT_TYPES


def encode_sse(event: StreamEvent) -> str:
    """Serialize an event as one SSE data frame."""
    return f"data: {event.model_dump_json(by_alias=True)}\n\n"


def decode_sse_data(payload: str) -> StreamEvent:
    """Parse the JSON payload of a ``data:`` line back into an event."""
    return stream_event_adapter.validate_json(payload)
