"""Markdown export of chunks, pages and slides."""

from __future__ import annotations

import os
from typing import List, Optional

from .extraction import PageContent, SlideContent
from .schemas import TextChunk


_MARKDOWN_SPECIALS = ("\\", "*", "_", "#", "[", "]", "(", ")", "`", ">")


def escape_markdown(text: Optional[str]) -> str:
    """Backslash-escape markdown special characters."""
    if text is None:
        return ""
    for char in _MARKDOWN_SPECIALS:
        text = text.replace(char, "\\" + char)
    return text


def _open_output(output_path: str):
    directory = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(directory, exist_ok=True)
    return open(output_path, "w", encoding="utf-8")


def export_chunks_to_markdown(chunks: List[TextChunk], output_path: str) -> None:
    """Write one section per chunk with its citation, type and page."""
    source = chunks[0].source_file if chunks else "Unknown"
    with _open_output(output_path) as handle:
        handle.write("# Document Export\n\n")
        handle.write(f"Generated from: {source}\n\n")
        handle.write(f"Total chunks: {len(chunks)}\n\n")
        handle.write("---\n\n")

        for chunk in chunks:
            handle.write(f"## Chunk {chunk.chunk_index}\n\n")
            handle.write(f"**Source:** {chunk.source_citation}\n\n")
            handle.write(f"**Type:** {chunk.chunk_type.value}\n\n")
            if chunk.page_number > 0:
                handle.write(f"**Page:** {chunk.page_number}\n\n")
            handle.write("**Content:**\n\n")
            handle.write(escape_markdown(chunk.content))
            handle.write("\n\n---\n\n")


def _export_units(units, label: str, total_label: str, output_path: str) -> None:
    source = units[0].source_file if units else "Unknown"
    with _open_output(output_path) as handle:
        handle.write(f"# {os.path.basename(source)}\n\n")
        handle.write(f"**Source:** {source}\n\n")
        handle.write(f"**{total_label}:** {len(units)}\n\n")
        handle.write("---\n\n")
        for number, content, _ in units:
            handle.write(f"## {label} {number}\n\n")
            handle.write(escape_markdown(content))
            handle.write("\n\n---\n\n")


def export_pages_to_markdown(pages: List[PageContent], output_path: str) -> None:
    _export_units(pages, "Page", "Total Pages", output_path)


def export_slides_to_markdown(slides: List[SlideContent], output_path: str) -> None:
    _export_units(slides, "Slide", "Total Slides", output_path)


def export_text_to_markdown(text: str, output_path: str, title: Optional[str] = None) -> None:
    with _open_output(output_path) as handle:
        handle.write(f"# {title or 'Document'}\n\n")
        handle.write(escape_markdown(text))
