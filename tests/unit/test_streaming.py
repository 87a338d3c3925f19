"""Unit tests for stream events and the event sink."""

import json

import pytest
import pytest_check as check
from pydantic import ValidationError

from src.errors import StreamClosedError
from src.streaming import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    EventSink,
    ThinkingEvent,
    ToolEndEvent,
    ToolStartEvent,
    decode_sse_data,
    encode_sse,
)


class TestEncoding:
    def test_frame_format(self) -> None:
        frame = encode_sse(ContentEvent(chunk="Hello"))

        check.is_true(frame.startswith("data: "))
        check.is_true(frame.endswith("\n\n"))
        check.equal(json.loads(frame[6:]), {"type": "content", "chunk": "Hello"})

    def test_done_uses_camel_case(self) -> None:
        frame = encode_sse(DoneEvent(has_context=True, chunks_used=3, used_web_search=False))

        assert json.loads(frame[6:]) == {
            "type": "done",
            "hasContext": True,
            "chunksUsed": 3,
            "usedWebSearch": False,
        }

    @pytest.mark.parametrize(
        "event",
        [
            ToolStartEvent(tool="web_search", message="Searching the web for: x"),
            ToolEndEvent(tool="document_search", message="Found 2 relevant chunks"),
            ThinkingEvent(),
            ErrorEvent(error="boom"),
            DoneEvent(hasContext=False, chunksUsed=0, usedWebSearch=True),
        ],
    )
    def test_decode_restores_event(self, event: object) -> None:
        frame = encode_sse(event)

        assert decode_sse_data(frame[len("data: ") :].strip()) == event

    def test_content_must_not_be_empty(self) -> None:
        with pytest.raises(ValidationError):
            ContentEvent(chunk="")


class TestEventSink:
    async def test_delivers_events_in_order_until_terminal(self) -> None:
        sink = EventSink()
        sink.emit(ThinkingEvent())
        sink.emit(ContentEvent(chunk="a"))
        sink.emit(ContentEvent(chunk="b"))
        sink.emit(DoneEvent(has_context=False, chunks_used=0, used_web_search=False))

        received = [event async for event in sink]

        check.equal([e.type for e in received], ["thinking", "content", "content", "done"])
        check.is_true(sink.closed)
        check.is_true(sink.terminal_sent)

    async def test_emit_after_terminal_raises(self) -> None:
        sink = EventSink()
        sink.emit(ErrorEvent(error="failed"))

        with pytest.raises(StreamClosedError):
            sink.emit(ContentEvent(chunk="late"))

    async def test_close_is_idempotent(self) -> None:
        sink = EventSink()
        sink.close()
        sink.close()

        received = [event async for event in sink]

        check.equal(received, [])
        check.is_false(sink.terminal_sent)

    async def test_emit_after_close_raises(self) -> None:
        sink = EventSink()
        sink.close()

        with pytest.raises(StreamClosedError):
            sink.emit(ThinkingEvent())
