"""Tool-calling conversation engine with token streaming.

Core module for answering a question against retrieved document context.

Round structure:

1. **Thinking** - The message list is ready for the next model call.
2. **StreamingModel** - One streaming chat completion with the search_web
   tool declared. Content deltas are forwarded to the client immediately;
   tool-call deltas are buffered in a ToolCallAccumulator.
3. **ExecutingTool** - The round ended with tool calls: the assistant
   message is appended, every call gets exactly one tool message, and the
   engine returns to Thinking.
4. **Done** - The round ended without tool calls; the streamed content is
   the answer.
5. **Failed** - The round limit was reached while the model still wanted
   tools, or the model call failed.

Conversation state lives for one request only. The engine itself is
constructed once at startup and shared across requests.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Protocol

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel

from src.agent.config import AgentConfig
from src.agent.prompts import ROUND_LIMIT_MESSAGE, build_system_prompt, build_user_prompt
from src.agent.tool_calls import ToolCallAccumulator, ToolCallRecord
from src.agent.tools import (
    SEARCH_WEB_TOOL,
    SEARCH_WEB_TOOL_NAME,
    filter_valid_results,
    format_search_results,
    parse_search_arguments,
)
from src.agent.web_search import WebSearchResult
from src.errors import ExternalServiceError, RoundLimitExceeded, ToolArgumentsError
from src.retrieval.orchestrator import RetrievalResult
from src.streaming import ContentEvent, EventSink, ThinkingEvent, ToolEndEvent, ToolStartEvent

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL_LABEL = "web_search"
EMPTY_ANSWER_MESSAGE = "I apologize, but I could not generate an answer."


class WebSearcher(Protocol):
    async def search(self, query: str, max_results: int = 5) -> list[WebSearchResult]: ...


class EngineState(str, Enum):
    """States of one conversation."""

    THINKING = "thinking"
    STREAMING_MODEL = "streaming_model"
    EXECUTING_TOOL = "executing_tool"
    DONE = "done"
    FAILED = "failed"


class ConversationOutcome(BaseModel):
    """Result of a completed conversation.

    Attributes:
        answer: Final answer text (already streamed as content events).
        used_web_search: Whether any web search was executed.
        rounds: Number of model calls issued.
    """

    answer: str
    used_web_search: bool
    rounds: int


class Conversation:
    """Per-request conversation state: an append-only message list."""

    def __init__(self, system_prompt: str, user_prompt: str) -> None:
        self._messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        self.state = EngineState.THINKING
        self.used_web_search = False
        self.rounds = 0

    @property
    def messages(self) -> list[dict[str, Any]]:
        return list(self._messages)

    def append(self, message: dict[str, Any]) -> None:
        self._messages.append(message)

    def transition(self, state: EngineState) -> None:
        logger.debug(f"Conversation state {self.state.value} -> {state.value} (round {self.rounds})")
        self.state = state


class ConversationEngine:
    """Drives the model through bounded tool-calling rounds.

    Wraps an AsyncOpenAI client with:
    - Streaming of content deltas to the client event sink
    - Incremental reconstruction of streamed tool calls
    - Web search tool execution with placeholder-result filtering
    - A hard bound on the number of model calls per question
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        web_search: WebSearcher,
        config: AgentConfig,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Shared async OpenAI (or compatible) client.
            web_search: Web search collaborator used by the search_web tool.
            config: Model and loop configuration.
        """
        self._client = client
        self._web_search = web_search
        self._config = config

    async def _stream_round(
        self,
        conversation: Conversation,
        max_tokens: int,
        sink: EventSink,
    ) -> tuple[str, list[ToolCallRecord]]:
        """Issue one streaming completion and collect its output.

        Returns:
            The round's content and the finalized tool calls.

        Raises:
            ExternalServiceError: If the request fails or times out.
        """
        accumulator = ToolCallAccumulator()
        content_parts: list[str] = []

        try:
            async with asyncio.timeout(self._config.request_timeout):
                stream = await self._client.chat.completions.create(
                    model=self._config.model_name,
                    messages=conversation.messages,
                    tools=[SEARCH_WEB_TOOL],
                    tool_choice="auto",
                    temperature=self._config.temperature,
                    max_tokens=max_tokens,
                    stream=True,
                )
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    if delta.content:
                        content_parts.append(delta.content)
                        sink.emit(ContentEvent(chunk=delta.content))
                    for tool_call_delta in delta.tool_calls or []:
                        accumulator.add_delta(tool_call_delta)
        except TimeoutError as e:
            raise ExternalServiceError(
                f"The model did not respond within {self._config.request_timeout:.0f} seconds"
            ) from e
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise ExternalServiceError(f"Failed to generate answer: {e}") from e

        return "".join(content_parts), accumulator.finalize()

    async def _run_web_search(
        self,
        call: ToolCallRecord,
        conversation: Conversation,
        sink: EventSink,
    ) -> str:
        try:
            arguments = parse_search_arguments(call.arguments)
        except ToolArgumentsError as e:
            logger.warning(f"Rejected search_web call {call.id}: {e}")
            return f"Error performing web search: {e}"

        sink.emit(
            ToolStartEvent(
                tool=WEB_SEARCH_TOOL_LABEL,
                message=f"Searching the web for: {arguments.query}",
            )
        )
        results = await self._web_search.search(
            arguments.query, self._config.web_search_max_results
        )
        conversation.used_web_search = True

        valid_count = len(filter_valid_results(results))
        sink.emit(
            ToolEndEvent(
                tool=WEB_SEARCH_TOOL_LABEL,
                message=(
                    f"Found {valid_count} web results" if valid_count else "No useful web results found"
                ),
            )
        )
        return format_search_results(
            arguments.query, results, self._config.web_search_max_results
        )

    async def _execute_tool_call(
        self,
        call: ToolCallRecord,
        conversation: Conversation,
        sink: EventSink,
    ) -> dict[str, Any]:
        """Execute one tool call and build its tool-role message."""
        if call.name == SEARCH_WEB_TOOL_NAME:
            content = await self._run_web_search(call, conversation, sink)
        else:
            logger.warning(f"Model requested unknown tool: {call.name}")
            content = f"Unknown tool: {call.name}. Only {SEARCH_WEB_TOOL_NAME} is available."

        return {"role": "tool", "tool_call_id": call.id, "content": content}

    async def run(
        self,
        question: str,
        retrieval: RetrievalResult,
        sink: EventSink,
    ) -> ConversationOutcome:
        """Answer a question, streaming progress into the sink.

        Emits ``thinking`` once, then ``content`` deltas and web-search
        ``tool_start``/``tool_end`` pairs. Terminal events are left to the
        caller.

        Args:
            question: The user's question.
            retrieval: Document context selected for the question.
            sink: Event sink of the current response.

        Returns:
            ConversationOutcome once the model answers without tool calls.

        Raises:
            RoundLimitExceeded: If every allowed round requested tools.
            ExternalServiceError: If a model call fails or times out.
        """
        conversation = Conversation(
            system_prompt=build_system_prompt(retrieval.has_context, retrieval.is_general),
            user_prompt=build_user_prompt(question, retrieval.context_text, retrieval.is_general),
        )
        max_tokens = (
            self._config.general_max_tokens if retrieval.is_general else self._config.max_tokens
        )

        sink.emit(ThinkingEvent(message="Generating answer..."))

        while conversation.rounds < self._config.max_rounds:
            conversation.rounds += 1
            conversation.transition(EngineState.STREAMING_MODEL)
            try:
                content, tool_calls = await self._stream_round(conversation, max_tokens, sink)
            except ExternalServiceError:
                conversation.transition(EngineState.FAILED)
                raise

            if not tool_calls:
                conversation.transition(EngineState.DONE)
                if not content:
                    content = EMPTY_ANSWER_MESSAGE
                    sink.emit(ContentEvent(chunk=content))
                return ConversationOutcome(
                    answer=content,
                    used_web_search=conversation.used_web_search,
                    rounds=conversation.rounds,
                )

            if conversation.rounds >= self._config.max_rounds:
                break

            conversation.transition(EngineState.EXECUTING_TOOL)
            conversation.append(
                {
                    "role": "assistant",
                    "content": content or None,
                    "tool_calls": [call.to_message() for call in tool_calls],
                }
            )
            for call in tool_calls:
                conversation.append(await self._execute_tool_call(call, conversation, sink))
            conversation.transition(EngineState.THINKING)

        conversation.transition(EngineState.FAILED)
        logger.warning(
            f"Round limit of {self._config.max_rounds} reached with tool calls still pending"
        )
        raise RoundLimitExceeded(ROUND_LIMIT_MESSAGE)
