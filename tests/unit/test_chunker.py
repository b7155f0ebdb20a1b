"""Test text chunking"""

import pytest

from kbresponder.rag.chunker import (
    TextChunk,
    generate_fixed_size_chunks,
    generate_recursive_chunks,
    normalize_text,
)


SAMPLE = (
    "Our support desk is open Monday to Friday.\n\n"
    "Dashboards refresh every hour. If a chart looks stale, reload the page "
    "and check the last sync time in the footer.\n\n"
    "Exports are limited to one million rows per request.\n"
    "Larger exports should be scheduled from the reports screen."
)


def test_normalize_text():
    assert normalize_text("  line one  \r\nline two\t\r\n\r\n ") == "line one\nline two"


@pytest.mark.parametrize("chunker", [generate_fixed_size_chunks, generate_recursive_chunks])
@pytest.mark.parametrize("text", ["", "   ", "\r\n\t\n"])
def test_empty_text_produces_no_chunks(chunker, text):
    assert chunker(text, 100, 10) == []


@pytest.mark.parametrize("chunker", [generate_fixed_size_chunks, generate_recursive_chunks])
def test_invalid_window_rejected(chunker):
    with pytest.raises(ValueError):
        chunker("text", 0, 0)
    with pytest.raises(ValueError):
        chunker("text", 10, -1)


def test_fixed_size_windows():
    text = "abcdefghijklmnopqrstuvwxy"
    chunks = generate_fixed_size_chunks(text, chunk_size=10, overlap=2)

    assert chunks == [
        TextChunk(text="abcdefghij", start=0, end=10),
        TextChunk(text="ijklmnopqr", start=8, end=18),
        TextChunk(text="qrstuvwxy", start=16, end=25),
    ]


def test_fixed_size_short_text_is_single_chunk():
    chunks = generate_fixed_size_chunks("Hello there", 1000, 200)
    assert chunks == [TextChunk(text="Hello there", start=0, end=11)]


def test_fixed_size_overlap_not_smaller_than_size_still_advances():
    chunks = generate_fixed_size_chunks("abcdef", chunk_size=3, overlap=5)
    assert [chunk.start for chunk in chunks] == [0, 1, 2, 3]
    assert chunks[-1].end == 6


@pytest.mark.parametrize("size,overlap", [(20, 5), (50, 0), (64, 16), (7, 6)])
def test_fixed_size_covers_every_character(size, overlap):
    normalized = normalize_text(SAMPLE)
    chunks = generate_fixed_size_chunks(SAMPLE, size, overlap)

    covered = set()
    for chunk in chunks:
        assert len(chunk.text) <= size
        assert chunk.end - chunk.start <= size
        covered.update(range(chunk.start, chunk.end))
    assert covered == set(range(len(normalized)))


def test_fixed_size_offsets_point_into_normalized_text():
    normalized = normalize_text(SAMPLE)
    for chunk in generate_fixed_size_chunks(SAMPLE, 40, 10):
        assert normalized[chunk.start:chunk.end].strip() == chunk.text


@pytest.mark.parametrize("size,overlap", [(30, 5), (60, 20), (100, 0), (1000, 200)])
def test_recursive_chunks_respect_size(size, overlap):
    chunks = generate_recursive_chunks(SAMPLE, size, overlap)

    assert chunks
    for chunk in chunks:
        assert 0 < len(chunk.text) <= size


@pytest.mark.parametrize("size,overlap", [(30, 5), (60, 20), (100, 0)])
def test_recursive_chunks_are_ordered_and_reach_the_end(size, overlap):
    chunks = generate_recursive_chunks(SAMPLE, size, overlap)

    starts = [chunk.start for chunk in chunks]
    assert starts == sorted(starts)
    assert chunks[-1].end == len(SAMPLE.strip())
    assert chunks[-1].text.endswith("screen.")


def test_recursive_chunks_keep_every_word():
    chunks = generate_recursive_chunks(SAMPLE, 60, 10)
    joined = " ".join(chunk.text for chunk in chunks)
    for word in SAMPLE.split():
        assert word in joined


def test_recursive_small_text_is_single_chunk():
    text = "First paragraph.\r\n\r\nSecond paragraph."
    chunks = generate_recursive_chunks(text, 1000, 200)

    assert len(chunks) == 1
    assert chunks[0].text == "First paragraph.\n\nSecond paragraph."
    assert chunks[0].start == 0


def test_recursive_hard_split_for_unbroken_text():
    text = "x" * 25
    chunks = generate_recursive_chunks(text, 10, 3)

    # The short tail picks up overlap from the previous slice
    assert [chunk.text for chunk in chunks] == ["x" * 10, "x" * 10, "x" * 8]
    assert [(chunk.start, chunk.end) for chunk in chunks] == [(0, 10), (10, 20), (17, 25)]


def test_recursive_overlap_carries_previous_text():
    text = "alpha beta gamma delta epsilon zeta"
    chunks = generate_recursive_chunks(text, 17, 6)

    assert len(chunks) > 1
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start < previous.end


def test_chunkers_are_deterministic():
    assert generate_recursive_chunks(SAMPLE, 50, 10) == generate_recursive_chunks(SAMPLE, 50, 10)
    assert generate_fixed_size_chunks(SAMPLE, 50, 10) == generate_fixed_size_chunks(SAMPLE, 50, 10)
