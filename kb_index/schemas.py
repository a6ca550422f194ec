"""Data schemas for KB Index."""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChunkType(str, Enum):
    """How a chunk was cut from its source."""
    PARAGRAPH = "paragraph"
    FIXED_SIZE = "fixed_size"
    PAGE = "page"
    SLIDE = "slide"
    SECTION = "section"
    ERROR = "error"


class TextChunk(BaseModel):
    """A span of extracted text treated as one retrieval unit."""
    model_config = ConfigDict(frozen=True)

    content: str
    chunk_index: int
    start_position: int = 0
    end_position: int = 0
    source_file: str
    chunk_type: ChunkType
    page_number: int = 0
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def length(self) -> int:
        return len(self.content)

    @property
    def source_citation(self) -> str:
        """Citation string used when quoting this chunk."""
        name = os.path.basename(self.source_file)
        if self.page_number > 0:
            return f"{name}, Page {self.page_number}"
        return name


class SectionTreeNode(BaseModel):
    """Node of a per-document section tree."""
    title: str
    content: Optional[str] = None
    source_file: str
    page_number: int = 0
    start_position: int = 0
    end_position: int = 0
    children: List["SectionTreeNode"] = Field(default_factory=list)

    def add_child(self, child: "SectionTreeNode") -> None:
        self.children.append(child)

    def walk(self) -> Iterator["SectionTreeNode"]:
        """Yield this node and its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


SectionTreeNode.model_rebuild()


class DocumentMetadata(BaseModel):
    """Per-document bookkeeping kept by the document indexer."""
    file_path: str
    file_name: str
    file_type: str = "application/octet-stream"
    file_size: int = 0
    last_modified: Optional[datetime] = None
    processed_date: Optional[datetime] = None
    total_chunks: int = 0
    is_processed: bool = False

    @classmethod
    def from_path(cls, file_path: str, file_type: str) -> "DocumentMetadata":
        """Build metadata from the file's current filesystem state."""
        try:
            stat = os.stat(file_path)
            size = stat.st_size
            modified: Optional[datetime] = datetime.fromtimestamp(stat.st_mtime)
        except OSError:
            size = 0
            modified = None
        return cls(
            file_path=file_path,
            file_name=os.path.basename(file_path),
            file_type=file_type,
            file_size=size,
            last_modified=modified,
        )


class EmbeddingItem(BaseModel):
    """A persisted vector-store record."""
    model_config = ConfigDict(populate_by_name=True)

    text: str
    vector: List[float]
    source_path: Optional[str] = Field(default=None, alias="sourcePath")
    page_start: int = Field(default=0, alias="pageStart")
    page_end: int = Field(default=0, alias="pageEnd")
    model: Optional[str] = None


class Match(BaseModel):
    """A scored search hit."""
    item: EmbeddingItem
    score: float

    @property
    def citation(self) -> str:
        pages = str(self.item.page_start)
        if self.item.page_end != self.item.page_start:
            pages = f"{pages}-{self.item.page_end}"
        return f"{self.item.source_path or ''} pages {pages}"
