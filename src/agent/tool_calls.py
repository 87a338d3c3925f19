"""Reconstruction of tool calls from streamed completion deltas.

Providers fragment tool calls arbitrarily across stream chunks: the id and
name usually arrive first, the JSON arguments in pieces, and several calls
can interleave by index. The accumulator buffers fragments per index while
the round is open and materializes ordered records once it is finalized.
"""

from typing import Any

from pydantic import BaseModel


class ToolCallRecord(BaseModel):
    """A complete tool call requested by the model."""

    id: str
    name: str
    arguments: str

    def to_message(self) -> dict[str, Any]:
        """Return the OpenAI ``tool_calls`` entry for the assistant message."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class _PartialToolCall:
    __slots__ = ("id", "name", "arguments")

    def __init__(self) -> None:
        self.id = ""
        self.name = ""
        self.arguments = ""


class ToolCallAccumulator:
    """Indexed buffer of partial tool calls for one model round.

    Usage:
        accumulator.add_delta(delta)  # for every streamed tool-call delta
        records = accumulator.finalize()  # once the stream ends
    """

    def __init__(self) -> None:
        self._partials: dict[int, _PartialToolCall] = {}
        self._finalized = False

    def add(
        self,
        index: int,
        call_id: str | None = None,
        name: str | None = None,
        arguments: str | None = None,
    ) -> None:
        """Merge one fragment into the call at ``index``.

        Raises:
            RuntimeError: If called after finalize().
        """
        if self._finalized:
            raise RuntimeError("Cannot add tool-call fragments after finalize()")

        partial = self._partials.setdefault(index, _PartialToolCall())
        if call_id:
            partial.id = call_id
        if name:
            partial.name += name
        if arguments:
            partial.arguments += arguments

    def add_delta(self, delta: Any) -> None:
        """Merge an OpenAI ``ChoiceDeltaToolCall`` into the buffer."""
        function = getattr(delta, "function", None)
        self.add(
            index=delta.index,
            call_id=getattr(delta, "id", None),
            name=getattr(function, "name", None) if function else None,
            arguments=getattr(function, "arguments", None) if function else None,
        )

    def finalize(self) -> list[ToolCallRecord]:
        """Close the round and return complete calls ordered by index.

        Calls that never received a name are dropped; calls without an id
        get a synthetic one so tool results can still reference them.
        """
        self._finalized = True
        records: list[ToolCallRecord] = []
        for index in sorted(self._partials):
            partial = self._partials[index]
            if not partial.name:
                continue
            records.append(
                ToolCallRecord(
                    id=partial.id or f"call_{index}",
                    name=partial.name,
                    arguments=partial.arguments,
                )
            )
        return records
