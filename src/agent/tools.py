"""The search_web tool: declaration, argument parsing and result formatting."""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.agent.web_search import NO_RESULTS_TITLE, SEARCH_ERROR_TITLE, WebSearchResult
from src.errors import ToolArgumentsError

logger = logging.getLogger(__name__)

SEARCH_WEB_TOOL_NAME = "search_web"

SEARCH_WEB_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": SEARCH_WEB_TOOL_NAME,
        "description": (
            "Search the internet for current information, facts, news, or any information "
            "that may not be in the provided documents. Use this when the user asks about "
            "current events, recent information, general knowledge questions, or when the "
            "answer cannot be found in the document context."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to look up on the internet",
                }
            },
            "required": ["query"],
        },
    },
}

# Snippet phrases that mark a placeholder rather than a real result
_FAILURE_PHRASES = ("unable to", "error")


class WebSearchArguments(BaseModel):
    """Validated arguments of a search_web call."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(..., min_length=1)

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


def parse_search_arguments(arguments: str) -> WebSearchArguments:
    """Parse the accumulated JSON arguments of a search_web call.

    Args:
        arguments: Raw JSON string streamed by the model.

    Returns:
        Validated arguments.

    Raises:
        ToolArgumentsError: If the JSON is malformed or lacks a query.
    """
    try:
        return WebSearchArguments.model_validate_json(arguments or "{}")
    except ValidationError as e:
        raise ToolArgumentsError(f"Invalid search_web arguments {arguments!r}: {e}") from e


def is_valid_result(result: WebSearchResult) -> bool:
    """Return False for placeholder and error entries."""
    if not result.title or result.title in (NO_RESULTS_TITLE, SEARCH_ERROR_TITLE):
        return False
    snippet = result.snippet.lower()
    if not snippet:
        return False
    return not any(phrase in snippet for phrase in _FAILURE_PHRASES)


def filter_valid_results(results: Sequence[WebSearchResult]) -> list[WebSearchResult]:
    return [r for r in results if is_valid_result(r)]


def no_results_message(query: str) -> str:
    return (
        f'The web search for "{query}" did not return any useful results. The search may '
        "have been blocked, the query may need to be rephrased, or there may be no relevant "
        "information available online for this query."
    )


def format_search_results(query: str, results: Sequence[WebSearchResult], max_results: int) -> str:
    """Format web results as the content of a tool message.

    Args:
        query: The query that was searched.
        results: Results returned by the web search client.
        max_results: Maximum results to include.

    Returns:
        Numbered list of title/description/URL entries, or the fixed
        "no useful results" explanation.
    """
    valid = filter_valid_results(results)[:max_results]
    if not valid:
        body = no_results_message(query)
    else:
        entries = []
        for idx, result in enumerate(valid, start=1):
            entry = f"[{idx}] Title: {result.title}\nDescription: {result.snippet}"
            if result.url:
                entry += f"\nURL: {result.url}"
            entries.append(entry)
        body = "\n\n".join(entries)
    return f'Web search performed for: "{query}"\n\n{body}'
