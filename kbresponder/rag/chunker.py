"""Text chunking strategies"""

from dataclasses import dataclass
from typing import List, Sequence
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# Tried in order; the empty separator means "hard split at chunk_size"
RECURSIVE_SEPARATORS = ("\n\n", "\n", " ", "")

_TRAILING_SPACES = re.compile(r"[ \t]+\n")


@dataclass(frozen=True)
class TextChunk:
    """Span of the normalized source text, end offset exclusive"""
    text: str
    start: int
    end: int


def normalize_line_endings(text: str) -> str:
    """Unify Windows line endings to a bare newline"""
    return text.replace("\r\n", "\n")


def normalize_text(text: str) -> str:
    """
    Normalize text before chunking

    Unifies line endings, drops spaces and tabs that trail a line and trims
    the result.
    """
    return _TRAILING_SPACES.sub("\n", normalize_line_endings(text)).strip()


def _check_window(chunk_size: int, overlap: int):
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must not be negative, got {overlap}")


def generate_fixed_size_chunks(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP
) -> List[TextChunk]:
    """
    Split text with a fixed-size sliding window

    Args:
        text: Raw text to chunk
        chunk_size: Window size in characters
        overlap: Characters shared by consecutive windows

    Returns:
        Chunks in source order; offsets refer to the normalized text and
        keep the untrimmed window bounds
    """
    _check_window(chunk_size, overlap)

    normalized = normalize_text(text)
    if not normalized:
        return []

    step = max(chunk_size - overlap, 1)
    total_length = len(normalized)
    chunks: List[TextChunk] = []
    start = 0

    while start < total_length:
        end = min(total_length, start + chunk_size)
        piece = normalized[start:end].strip()
        if piece:
            chunks.append(TextChunk(text=piece, start=start, end=end))
        if end >= total_length:
            break
        start += step

    logger.debug(f"Fixed-size split produced {len(chunks)} chunks (size: {chunk_size}, overlap: {overlap})")
    return chunks


def generate_recursive_chunks(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP
) -> List[TextChunk]:
    """
    Split text on paragraph, line and word boundaries, then merge with overlap

    Oversized pieces fall through to the next separator in
    RECURSIVE_SEPARATORS and finally to a hard split. The resulting leaves are
    merged back into windows of at most chunk_size characters.

    Args:
        text: Raw text to chunk
        chunk_size: Maximum chunk length in characters
        overlap: Characters carried from one merged chunk into the next

    Returns:
        Merged chunks in source order
    """
    _check_window(chunk_size, overlap)

    normalized = normalize_line_endings(text).strip()
    if not normalized:
        return []

    leaves = _split_recursively(normalized, 0, RECURSIVE_SEPARATORS, chunk_size)
    chunks = _apply_chunk_overlap(normalized, leaves, chunk_size, overlap)

    logger.debug(
        f"Recursive split produced {len(leaves)} leaves merged into {len(chunks)} chunks "
        f"(size: {chunk_size}, overlap: {overlap})"
    )
    return chunks


def _split_recursively(
    text: str,
    start_offset: int,
    separators: Sequence[str],
    max_length: int
) -> List[TextChunk]:
    if len(text) <= max_length or not separators:
        piece = text.strip()
        if not piece:
            return []
        return [TextChunk(text=piece, start=start_offset, end=start_offset + len(text))]

    separator, rest = separators[0], separators[1:]
    if not separator:
        return _hard_split(text, start_offset, max_length)

    chunks: List[TextChunk] = []
    cursor = start_offset

    for segment in text.split(separator):
        if not segment:
            cursor += len(separator)
            continue

        if len(segment) + len(separator) <= max_length:
            piece = segment.strip()
            if piece:
                chunks.append(TextChunk(text=piece, start=cursor, end=cursor + len(segment)))
        else:
            chunks.extend(_split_recursively(segment, cursor, rest, max_length))

        cursor += len(segment) + len(separator)

    return chunks


def _hard_split(text: str, start_offset: int, max_length: int) -> List[TextChunk]:
    chunks: List[TextChunk] = []
    for index in range(0, len(text), max_length):
        piece = text[index:index + max_length]
        if piece.strip():
            chunks.append(TextChunk(
                text=piece.strip(),
                start=start_offset + index,
                end=start_offset + index + len(piece)
            ))
    return chunks


def _apply_chunk_overlap(
    source: str,
    leaves: List[TextChunk],
    chunk_size: int,
    overlap: int
) -> List[TextChunk]:
    """
    Merge adjacent leaves into windows of at most chunk_size characters

    Merged text is taken from the source span so spacing between leaves is
    preserved. When a leaf no longer fits, the buffer is flushed (ending at
    that leaf's start) and a new buffer opens on the leaf, prefixed by up to
    `overlap` characters of the flushed span.
    """
    if not leaves:
        return []

    merged: List[TextChunk] = []
    buffer_start = leaves[0].start

    def flush(end: int):
        piece = source[buffer_start:end].strip()
        if piece:
            merged.append(TextChunk(text=piece, start=buffer_start, end=end))

    for leaf in leaves[1:]:
        if leaf.end - buffer_start <= chunk_size:
            continue

        flush(leaf.start)
        # Offsets index the source, so the carried overlap may start mid-word.
        carried = max(0, min(overlap, chunk_size - (leaf.end - leaf.start), leaf.start - buffer_start))
        buffer_start = leaf.start - carried

    flush(leaves[-1].end)
    return merged
