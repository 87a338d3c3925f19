"""Unit tests for search_web argument parsing, filtering and tool-call accumulation."""

import pytest
import pytest_check as check

from src.agent.tool_calls import ToolCallAccumulator
from src.agent.tools import (
    SEARCH_WEB_TOOL,
    filter_valid_results,
    format_search_results,
    parse_search_arguments,
)
from src.agent.web_search import NO_RESULTS_TITLE, SEARCH_ERROR_TITLE, WebSearchResult
from src.errors import ToolArgumentsError
from tests.conftest import tool_call_chunk


class TestSearchWebDeclaration:
    def test_single_required_query_parameter(self) -> None:
        parameters = SEARCH_WEB_TOOL["function"]["parameters"]

        check.equal(SEARCH_WEB_TOOL["function"]["name"], "search_web")
        check.equal(parameters["required"], ["query"])
        check.equal(parameters["properties"]["query"]["type"], "string")


class TestParseSearchArguments:
    def test_parses_query(self) -> None:
        assert parse_search_arguments('{"query": "  python news "}').query == "python news"

    def test_ignores_extra_keys(self) -> None:
        assert parse_search_arguments('{"query": "x", "lang": "en"}').query == "x"

    @pytest.mark.parametrize("arguments", ['{"query": ', "{}", '{"query": ""}', "", "[1]"])
    def test_rejects_invalid_arguments(self, arguments: str) -> None:
        with pytest.raises(ToolArgumentsError):
            parse_search_arguments(arguments)


class TestResultFiltering:
    def test_drops_placeholders_and_failure_snippets(self) -> None:
        results = [
            WebSearchResult(title="Good", snippet="Useful text", url="https://a.example"),
            WebSearchResult(title=NO_RESULTS_TITLE, snippet="Nothing"),
            WebSearchResult(title=SEARCH_ERROR_TITLE, snippet="Boom"),
            WebSearchResult(title="", snippet="Untitled"),
            WebSearchResult(title="Blocked", snippet="We were unable to load this page"),
            WebSearchResult(title="Oops", snippet="An Error occurred"),
        ]

        assert [r.title for r in filter_valid_results(results)] == ["Good"]

    def test_formats_numbered_results(self) -> None:
        results = [
            WebSearchResult(title="First", snippet="One", url="https://one.example"),
            WebSearchResult(title="Second", snippet="Two"),
        ]

        text = format_search_results("query", results, max_results=5)

        check.is_true(text.startswith('Web search performed for: "query"'))
        check.is_in("[1] Title: First\nDescription: One\nURL: https://one.example", text)
        check.is_in("[2] Title: Second\nDescription: Two", text)
        check.is_not_in("[2] Title: Second\nDescription: Two\nURL", text)

    def test_respects_max_results(self) -> None:
        results = [WebSearchResult(title=f"T{i}", snippet="s") for i in range(8)]

        text = format_search_results("q", results, max_results=3)

        check.is_in("[3]", text)
        check.is_not_in("[4]", text)

    def test_no_valid_results_gives_explanation(self) -> None:
        text = format_search_results(
            "q", [WebSearchResult(title=NO_RESULTS_TITLE, snippet="x")], max_results=5
        )

        assert "did not return any useful results" in text


class TestToolCallAccumulator:
    def test_concatenates_fragments_by_index(self) -> None:
        accumulator = ToolCallAccumulator()
        accumulator.add(0, call_id="call_a", name="search_", arguments='{"qu')
        accumulator.add(1, call_id="call_b", name="search_web", arguments='{"query": "b"}')
        accumulator.add(0, name="web", arguments='ery": "a"}')

        records = accumulator.finalize()

        check.equal([r.id for r in records], ["call_a", "call_b"])
        check.equal(records[0].name, "search_web")
        check.equal(records[0].arguments, '{"query": "a"}')

    def test_orders_by_index_not_arrival(self) -> None:
        accumulator = ToolCallAccumulator()
        accumulator.add(2, call_id="late", name="search_web")
        accumulator.add(0, call_id="early", name="search_web")

        assert [r.id for r in accumulator.finalize()] == ["early", "late"]

    def test_drops_nameless_and_fills_missing_ids(self) -> None:
        accumulator = ToolCallAccumulator()
        accumulator.add(0, arguments="{}")
        accumulator.add(1, name="search_web", arguments="{}")

        records = accumulator.finalize()

        check.equal(len(records), 1)
        check.equal(records[0].id, "call_1")

    def test_add_delta_reads_openai_shape(self) -> None:
        accumulator = ToolCallAccumulator()
        for chunk in (
            tool_call_chunk(0, call_id="call_x", name="search_web", arguments='{"query"'),
            tool_call_chunk(0, arguments=': "python"}'),
        ):
            accumulator.add_delta(chunk.choices[0].delta.tool_calls[0])

        (record,) = accumulator.finalize()

        check.equal(record.to_message()["function"]["arguments"], '{"query": "python"}')
        check.equal(record.to_message()["type"], "function")

    def test_rejects_fragments_after_finalize(self) -> None:
        accumulator = ToolCallAccumulator()
        accumulator.finalize()

        with pytest.raises(RuntimeError):
            accumulator.add(0, name="search_web")
