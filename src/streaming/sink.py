"""Single-owner event sink for one chat response.

The pipeline task writes events with emit(); the HTTP response drains
them by iterating the sink. A terminal event (done or error) closes the
sink, so exactly one terminal event is ever delivered and nothing follows
it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from src.errors import StreamClosedError
from src.streaming.events import StreamEvent, is_terminal

logger = logging.getLogger(__name__)

_CLOSE = object()


class EventSink:
    """Ordered, close-once event queue between the pipeline and one client."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[StreamEvent | object] = asyncio.Queue()
        self._closed = False
        self._terminal_sent = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_sent(self) -> bool:
        return self._terminal_sent

    def emit(self, event: StreamEvent) -> None:
        """Enqueue an event.

        Args:
            event: Event to deliver. A terminal event closes the sink.

        Raises:
            StreamClosedError: If the sink is already closed.
        """
        if self._closed:
            raise StreamClosedError(f"Cannot emit {event.type!r} event: stream is closed")

        self._queue.put_nowait(event)
        if is_terminal(event):
            self._terminal_sent = True
            self.close()

    def close(self) -> None:
        """Close the sink. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item
