"""Chunking strategies: paragraph, fixed size with overlap, and section tree."""

from __future__ import annotations

import re
from typing import List, Optional

from .schemas import ChunkType, SectionTreeNode, TextChunk
from .sections import build_section_tree


DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP_SIZE = 200

# Blank-line paragraph separators in LF or CRLF text.
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n|\r\n\s*\r\n")

_BREAK_CHARS = (" ", ".", "。", "!", "！")


class ChunkingError(ValueError):
    """Raised when text cannot be chunked."""
    pass


def chunk_by_paragraph(text: Optional[str], source_file: str, page_number: int = 0) -> List[TextChunk]:
    """
    Split text into paragraph chunks on blank lines.

    Offsets are located by scanning forward from the previous chunk's end,
    so repeated paragraphs map to successive occurrences.
    """
    chunks: List[TextChunk] = []
    if not text or not text.strip():
        return chunks

    position = 0
    for paragraph in _PARAGRAPH_SPLIT_RE.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        start = text.find(paragraph, position)
        end = start + len(paragraph)
        chunks.append(
            TextChunk(
                content=paragraph,
                chunk_index=len(chunks),
                start_position=start,
                end_position=end,
                source_file=source_file,
                chunk_type=ChunkType.PARAGRAPH,
                page_number=page_number,
            )
        )
        position = end

    return chunks


def _find_break(text: str, start: int, end: int) -> int:
    """Last space or sentence mark at or before ``end`` (inside the window)."""
    return max(text.rfind(char, start, end + 1) for char in _BREAK_CHARS)


def chunk_by_size(
    text: Optional[str],
    source_file: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap_size: int = DEFAULT_OVERLAP_SIZE,
    page_number: int = 0,
    snap_to_breaks: bool = True,
) -> List[TextChunk]:
    """
    Split text into windows of ``chunk_size`` characters with overlap.

    A cut that falls inside the text snaps back to just after the nearest
    space or sentence mark when that break lies past the middle of the
    window, unless ``snap_to_breaks`` is off. Chunks are trimmed; empty
    ones are dropped.
    """
    chunks: List[TextChunk] = []
    if not text or not text.strip():
        return chunks

    if chunk_size <= 0:
        chunk_size = DEFAULT_CHUNK_SIZE
    if overlap_size < 0:
        overlap_size = 0

    text_length = len(text)
    start = 0

    while start < text_length:
        end = min(start + chunk_size, text_length)

        if snap_to_breaks and end < text_length:
            break_point = _find_break(text, start, end)
            if break_point > start + chunk_size * 0.5:
                end = break_point + 1

        piece = text[start:end].strip()
        if piece:
            chunks.append(
                TextChunk(
                    content=piece,
                    chunk_index=len(chunks),
                    start_position=start,
                    end_position=end,
                    source_file=source_file,
                    chunk_type=ChunkType.FIXED_SIZE,
                    page_number=page_number,
                    metadata={
                        "chunk_size": str(chunk_size),
                        "overlap_size": str(overlap_size),
                    },
                )
            )

        if end >= text_length:
            break

        # A snapped cut still advances by at least chunk_size - overlap_size.
        next_start = max(end - overlap_size, min(end, start + chunk_size - overlap_size))
        if next_start <= start:
            next_start = end
        start = next_start

    return chunks


def chunk_by_section(text: Optional[str], source_file: str, page_number: int = 0) -> Optional[SectionTreeNode]:
    """Build a section tree over ``text``; None for blank input."""
    if text is None:
        return None
    return build_section_tree(text, source_file, page_number)
