"""Tests for fixed-window text chunking."""
import math

import pytest

from docqa.rag.chunker import TextChunker, chunk_text


def expected_count(length: int, size: int, overlap: int) -> int:
    if length == 0:
        return 0
    if length <= size:
        return 1
    return math.ceil(max(length - overlap, 0) / (size - overlap))


def test_splits_into_fixed_windows():
    assert chunk_text("AAAABBBB", size=4, overlap=0) == ["AAAA", "BBBB"]


def test_overlapping_windows_share_characters():
    assert chunk_text("abcdefghij", size=4, overlap=2) == ["abcd", "cdef", "efgh", "ghij"]


def test_last_window_may_be_shorter():
    assert chunk_text("abcdefghi", size=4, overlap=1) == ["abcd", "defg", "ghi"]


def test_empty_text_yields_no_chunks():
    assert chunk_text("", size=4, overlap=1) == []


def test_short_text_is_single_chunk():
    assert chunk_text("abc", size=800, overlap=200) == ["abc"]


def test_defaults_are_800_and_200():
    chunks = chunk_text("x" * 1000)
    assert [len(c) for c in chunks] == [800, 400]


@pytest.mark.parametrize("size,overlap", [(4, 0), (4, 3), (10, 3), (800, 200), (7, 6)])
@pytest.mark.parametrize("length", [1, 3, 4, 5, 9, 10, 11, 25, 1000, 1601])
def test_starts_step_by_size_minus_overlap(length, size, overlap):
    text = "".join(chr(ord("a") + i % 26) for i in range(length))
    chunks = TextChunker(chunk_size=size, chunk_overlap=overlap).chunk_text(text)

    assert len(chunks) == expected_count(length, size, overlap)
    assert [c.char_start for c in chunks] == [i * (size - overlap) for i in range(len(chunks))]
    assert chunks[-1].char_end == length
    assert all(c.content == text[c.char_start:c.char_end] for c in chunks)
    assert all(c.content for c in chunks)


def test_is_deterministic():
    text = "The quick brown fox jumps over the lazy dog. " * 50
    assert chunk_text(text, 100, 30) == chunk_text(text, 100, 30)


@pytest.mark.parametrize("size,overlap", [(4, 4), (4, 5), (0, 0), (4, -1)])
def test_rejects_configurations_without_progress(size, overlap):
    with pytest.raises(ValueError):
        TextChunker(chunk_size=size, chunk_overlap=overlap)
