"""Unit tests for the overlapping text chunker."""

import pytest
import pytest_check as check

from src.errors import InvalidArgumentError
from src.parsing.chunker import chunk_text


class TestChunkTextScenarios:
    """Known inputs with exact expected windows."""

    def test_2500_chars_gives_four_chunks(self) -> None:
        """2500 chars, size 1000, overlap 200 starts at 0, 800, 1600, 2400."""
        chunks = chunk_text("x" * 2500, chunk_size=1000, overlap=200)

        check.equal([c.start_index for c in chunks], [0, 800, 1600, 2400])
        check.equal([c.end_index for c in chunks], [1000, 1800, 2500, 2500])
        check.equal([c.chunk_index for c in chunks], [0, 1, 2, 3])

    def test_empty_text_gives_no_chunks(self) -> None:
        assert chunk_text("") == []

    def test_short_text_is_single_chunk(self) -> None:
        chunks = chunk_text("hello world", chunk_size=1000, overlap=200)

        check.equal(len(chunks), 1)
        check.equal(chunks[0].text, "hello world")
        check.equal((chunks[0].start_index, chunks[0].end_index), (0, 11))

    def test_zero_overlap_tiles_text(self) -> None:
        chunks = chunk_text("abcdefghij", chunk_size=3, overlap=0)

        check.equal([c.text for c in chunks], ["abc", "def", "ghi", "j"])


class TestChunkTextProperties:
    """Invariants that hold for any valid input."""

    @pytest.mark.parametrize(
        ("length", "chunk_size", "overlap"),
        [(1, 1, 0), (999, 100, 99), (2500, 1000, 200), (5003, 512, 64), (37, 10, 9)],
    )
    def test_spans_cover_text_and_match_offsets(
        self, length: int, chunk_size: int, overlap: int
    ) -> None:
        """Every character is covered and each chunk's text equals its span."""
        text = "".join(chr(ord("a") + i % 26) for i in range(length))
        chunks = chunk_text(text, chunk_size=chunk_size, overlap=overlap)

        covered: set[int] = set()
        for chunk in chunks:
            check.is_true(0 <= chunk.start_index < chunk.end_index <= length)
            check.less_equal(chunk.end_index - chunk.start_index, chunk_size)
            check.equal(chunk.text, text[chunk.start_index : chunk.end_index])
            covered.update(range(chunk.start_index, chunk.end_index))
        check.equal(covered, set(range(length)))

    @pytest.mark.parametrize(("chunk_size", "overlap"), [(10, 9), (100, 0), (7, 3)])
    def test_starts_strictly_increase(self, chunk_size: int, overlap: int) -> None:
        chunks = chunk_text("z" * 250, chunk_size=chunk_size, overlap=overlap)
        starts = [c.start_index for c in chunks]

        assert all(a < b for a, b in zip(starts, starts[1:], strict=False))


class TestChunkTextValidation:
    """Parameter validation."""

    def test_rejects_non_positive_chunk_size(self) -> None:
        with pytest.raises(InvalidArgumentError, match="chunk_size"):
            chunk_text("text", chunk_size=0, overlap=0)

    def test_rejects_negative_overlap(self) -> None:
        with pytest.raises(InvalidArgumentError, match="non-negative"):
            chunk_text("text", chunk_size=10, overlap=-1)

    def test_rejects_overlap_not_below_chunk_size(self) -> None:
        with pytest.raises(InvalidArgumentError, match="less than chunk_size"):
            chunk_text("text", chunk_size=10, overlap=10)

    def test_invalid_argument_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            chunk_text("text", chunk_size=5, overlap=6)
