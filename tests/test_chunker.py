"""
Tests for line-based chunking.
"""

import pytest

from codeask.indexing.chunker import split_into_chunks


class TestSplitIntoChunks:
    def test_empty_content_yields_no_chunks(self):
        assert split_into_chunks("", max_length=100) == []

    def test_short_content_is_one_chunk(self):
        chunks = split_into_chunks("a\nb\nc", max_length=100)

        assert len(chunks) == 1
        assert chunks[0].content == "a\nb\nc"
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 3)

    def test_chunks_rejoin_to_original_lines(self):
        lines = [f"line number {i} with some padding" for i in range(40)]
        content = "\n".join(lines)

        chunks = split_into_chunks(content, max_length=120)

        assert len(chunks) > 1
        assert "\n".join(c.content for c in chunks) == content
        for chunk in chunks:
            assert len(chunk.content) <= 120

    def test_line_ranges_are_contiguous(self):
        content = "\n".join("x" * 30 for _ in range(20))

        chunks = split_into_chunks(content, max_length=70)

        assert chunks[0].start_line == 1
        assert chunks[-1].end_line == 20
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line == previous.end_line + 1

    def test_overlong_single_line_is_kept_whole(self):
        long_line = "y" * 250
        content = f"short\n{long_line}\ntail"

        chunks = split_into_chunks(content, max_length=100)

        assert [c.content for c in chunks] == ["short", long_line, "tail"]
        assert chunks[1].start_line == chunks[1].end_line == 2

    def test_blank_lines_are_preserved(self):
        chunks = split_into_chunks("\n\n", max_length=10)

        assert len(chunks) == 1
        assert chunks[0].content == "\n\n"
        assert chunks[0].end_line == 3

    def test_seeded_blank_line_never_forms_empty_chunk(self):
        chunks = split_into_chunks("aaaa\n\nbbbb", max_length=4)

        assert [c.content for c in chunks] == ["aaaa", "\nbbbb"]
        assert all(c.content for c in chunks)
        assert (chunks[1].start_line, chunks[1].end_line) == (2, 3)

    def test_non_positive_max_length_is_rejected(self):
        with pytest.raises(ValueError):
            split_into_chunks("abc", max_length=0)
