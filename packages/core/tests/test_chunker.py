"""Tests for diff chunking and chunked review merging."""

import math
import time

import pytest

from p4lens_core.chunker import chunk_diff, review_chunked

PATH = "//depot/big.cpp"


def _diff(n_lines: int) -> str:
    return "".join(f"+line number {i}\n" for i in range(n_lines))


class TestChunkDiff:
    @pytest.mark.parametrize("text", ["", "a", "abc\n", _diff(50), "x" * 1001])
    @pytest.mark.parametrize("max_size", [1, 7, 100, 1000])
    def test_concatenation_reconstructs_text(self, text, max_size):
        chunks = chunk_diff(PATH, text, max_size)
        assert "".join(c.text for c in chunks) == text

    @pytest.mark.parametrize("length,max_size", [(0, 5), (5, 5), (6, 5), (10, 5), (11, 5), (12000, 12000), (12001, 12000)])
    def test_chunk_count_is_ceiling(self, length, max_size):
        chunks = chunk_diff(PATH, "d" * length, max_size)
        assert len(chunks) == max(1, math.ceil(length / max_size))

    def test_single_chunk_passthrough(self):
        text = _diff(3)
        chunks = chunk_diff(PATH, text, len(text))
        assert len(chunks) == 1
        assert chunks[0].text == text
        assert chunks[0].index == 1
        assert chunks[0].total == 1

    def test_empty_diff_is_one_chunk(self):
        chunks = chunk_diff(PATH, "", 10)
        assert len(chunks) == 1
        assert chunks[0].text == ""

    def test_chunks_are_numbered_and_bounded(self):
        chunks = chunk_diff(PATH, "y" * 25, 10)
        assert [c.index for c in chunks] == [1, 2, 3]
        assert all(c.total == 3 for c in chunks)
        assert all(len(c.text) <= 10 for c in chunks)
        assert all(c.depot_path == PATH for c in chunks)

    def test_non_positive_max_size_raises(self):
        with pytest.raises(ValueError):
            chunk_diff(PATH, "abc", 0)

    def test_raw_cuts_can_split_lines(self):
        chunks = chunk_diff(PATH, "aaaa\nbbbb\n", 7)
        assert chunks[0].text == "aaaa\nbb"


class TestChunkDiffAlignedToLines:
    def test_cuts_after_newline(self):
        chunks = chunk_diff(PATH, "aaaa\nbbbb\ncccc\n", 7, align_lines=True)
        assert [c.text for c in chunks] == ["aaaa\n", "bbbb\n", "cccc\n"]

    def test_long_line_falls_back_to_raw_cut(self):
        text = "z" * 20 + "\nshort\n"
        chunks = chunk_diff(PATH, text, 8, align_lines=True)
        assert "".join(c.text for c in chunks) == text
        assert all(len(c.text) <= 8 for c in chunks)

    @pytest.mark.parametrize("max_size", [3, 10, 64])
    def test_aligned_reconstructs_text(self, max_size):
        text = _diff(40)
        chunks = chunk_diff(PATH, text, max_size, align_lines=True)
        assert "".join(c.text for c in chunks) == text
        assert all(len(c.text) <= max_size for c in chunks)


class TestReviewChunked:
    def test_single_chunk_skips_merge(self):
        merged = []
        chunks = chunk_diff(PATH, "+x", 100)
        result = review_chunked(chunks, lambda c: f"review of {c.text}", lambda parts: merged.append(parts) or "merged")
        assert result == "review of +x"
        assert merged == []

    def test_multiple_chunks_merged_once_in_order(self):
        merge_calls = []
        chunks = chunk_diff(PATH, "abcdefghij", 3)

        def merge(parts):
            merge_calls.append(parts)
            return "|".join(parts)

        result = review_chunked(chunks, lambda c: f"{c.index}:{c.text}", merge)
        assert merge_calls == [["1:abc", "2:def", "3:ghi", "4:j"]]
        assert result == "1:abc|2:def|3:ghi|4:j"

    def test_concurrent_chunk_reviews_keep_order(self):
        chunks = chunk_diff(PATH, "q" * 50, 5)

        def review(chunk):
            # Later chunks finish first.
            time.sleep(0.001 * (10 - chunk.index))
            return str(chunk.index)

        result = review_chunked(chunks, review, lambda parts: ",".join(parts), concurrency=4)
        assert result == ",".join(str(i) for i in range(1, 11))

    def test_chunk_failure_propagates(self):
        chunks = chunk_diff(PATH, "abcdef", 2)

        def review(chunk):
            if chunk.index == 2:
                raise RuntimeError("rate limited")
            return "ok"

        with pytest.raises(RuntimeError, match="rate limited"):
            review_chunked(chunks, review, lambda parts: "merged")

    def test_no_chunks_raises(self):
        with pytest.raises(ValueError):
            review_chunked([], lambda c: "", lambda p: "")
