"""Heading detection and section trees over a document's full text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .schemas import ChunkType, SectionTreeNode, TextChunk


ROOT_TITLE = "Root"

# Heading-like line starts: CJK chapter markers, "Chapter N", Markdown
# headings and numbered section markers.
SECTION_PATTERN = re.compile(
    r"^(?:"
    r"第[一二三四五六七八九十\d]+章"
    r"|Chapter[ \t]+\d+"
    r"|#+[ \t]+.+"
    r"|第\d+节"
    r")",
    re.MULTILINE,
)


@dataclass(frozen=True)
class SectionInfo:
    """A detected heading line and where it starts."""
    title: str
    position: int
    line_number: int


def find_sections(text: str) -> List[SectionInfo]:
    """Return the heading lines of ``text`` in reading order."""
    sections: List[SectionInfo] = []
    for match in SECTION_PATTERN.finditer(text):
        start = match.start()
        line_end = text.find("\n", start)
        if line_end == -1:
            line_end = len(text)
        sections.append(
            SectionInfo(
                title=text[start:line_end].strip(),
                position=start,
                line_number=text.count("\n", 0, start),
            )
        )
    return sections


def build_section_tree(text: str, source_file: str, page_number: int = 0) -> Optional[SectionTreeNode]:
    """
    Build the section tree for a document.

    Every heading spans from its own start to the next heading's start (or
    the end of the text). Each section is nested under the previously
    created one, so the tree is a single chain below ``Root`` that follows
    reading order rather than heading depth.

    Returns:
        The ``Root`` node, or None for blank text.
    """
    if not text or not text.strip():
        return None

    sections = find_sections(text)
    root = SectionTreeNode(title=ROOT_TITLE, content="", source_file=source_file, page_number=0)
    current = root

    for index, section in enumerate(sections):
        start = section.position
        end = sections[index + 1].position if index + 1 < len(sections) else len(text)
        node = SectionTreeNode(
            title=section.title,
            content=text[start:end].strip(),
            source_file=source_file,
            page_number=page_number,
            start_position=start,
            end_position=end,
        )
        current.add_child(node)
        current = node

    return root


def count_sections(root: Optional[SectionTreeNode]) -> int:
    """Number of heading sections below the root."""
    if root is None:
        return 0
    return sum(1 for _ in root.walk()) - 1


def flatten_section_tree(root: SectionTreeNode) -> List[TextChunk]:
    """Turn a section tree into ``section`` chunks in pre-order."""
    chunks: List[TextChunk] = []
    for node in root.walk():
        if not node.content:
            continue
        chunks.append(
            TextChunk(
                content=node.content,
                chunk_index=len(chunks),
                start_position=node.start_position,
                end_position=node.end_position,
                source_file=node.source_file,
                chunk_type=ChunkType.SECTION,
                page_number=node.page_number,
                metadata={"section_title": node.title},
            )
        )
    return chunks
