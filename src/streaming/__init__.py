"""Streaming protocol for chat responses.

Typed server-sent events and the single-owner sink the pipeline writes
them to. The HTTP layer drains the sink and encodes each event as an SSE
frame.
"""

from src.streaming.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    StreamEventType,
    ThinkingEvent,
    ToolEndEvent,
    ToolStartEvent,
    decode_sse_data,
    encode_sse,
)
from src.streaming.sink import EventSink

__all__ = [
    "ContentEvent",
    "DoneEvent",
    "ErrorEvent",
    "EventSink",
    "StreamEvent",
    "StreamEventType",
    "ThinkingEvent",
    "ToolEndEvent",
    "ToolStartEvent",
    "decode_sse_data",
    "encode_sse",
]
