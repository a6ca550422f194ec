"""Per-document indexing: extraction, chunking and in-memory chunk/tree maps."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .chunking import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_OVERLAP_SIZE,
    chunk_by_paragraph,
    chunk_by_section,
    chunk_by_size,
)
from .config import Settings
from .extraction import (
    PDF_EXTENSIONS,
    SLIDE_EXTENSIONS,
    TEXT_EXTENSIONS,
    Extractor,
    detect_file_type,
    is_paginated,
    is_slide_deck,
)
from .schemas import ChunkType, DocumentMetadata, SectionTreeNode, TextChunk
from .sections import count_sections, flatten_section_tree
from .utils import normalize_text, safe_relpath

_log = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = PDF_EXTENSIONS | SLIDE_EXTENSIONS | TEXT_EXTENSIONS


def _extend_in_order(chunks: List[TextChunk], new_chunks: List[TextChunk]) -> None:
    """Append chunks, renumbering them in document order."""
    for chunk in new_chunks:
        chunks.append(chunk.model_copy(update={"chunk_index": len(chunks)}))


def _is_office_lock(name: str) -> bool:
    """Check if filename is an Office lock file."""
    return name.startswith("~$")


def scan_documents(
    source_dir: str,
    extensions: Optional[Iterable[str]] = None,
) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Recursively scan a directory for indexable documents.

    Returns:
        (included_files, skipped_files_with_reasons), paths absolute and sorted;
        each skip record also carries the path relative to ``source_dir``
    """
    allowed: Set[str] = {ext.lower() for ext in (extensions or SUPPORTED_EXTENSIONS)}
    base = os.path.abspath(source_dir)
    included: List[str] = []
    skipped: List[Dict[str, str]] = []

    def skip(path: str, reason: str) -> None:
        skipped.append({"path": path, "relpath": safe_relpath(path, base), "reason": reason})

    for root, dirs, files in os.walk(base):
        dirs.sort()
        for filename in sorted(files):
            path = os.path.join(root, filename)
            if _is_office_lock(filename):
                skip(path, "office_lock")
                continue

            ext = os.path.splitext(filename)[1].lower()
            if ext not in allowed:
                skip(path, "unsupported_extension")
                continue

            try:
                if os.path.getsize(path) == 0:
                    skip(path, "empty_file")
                    continue
            except OSError:
                skip(path, "stat_failed")
                continue

            included.append(path)

    return included, skipped


class DocumentIndexer:
    """
    Chunks whole documents and keeps the results in memory.

    Three maps are keyed by file path: document metadata, chunk list and
    section tree. Re-processing a path replaces its previous entries.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP_SIZE):
        self.chunk_size = chunk_size
        self.overlap = overlap
        self._documents: Dict[str, DocumentMetadata] = {}
        self._chunks: Dict[str, List[TextChunk]] = {}
        self._trees: Dict[str, SectionTreeNode] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocumentIndexer":
        return cls(chunk_size=settings.document_chunk_size, overlap=settings.document_overlap)

    def process_document(self, file_path: str, extractor: Extractor) -> DocumentMetadata:
        """
        Extract, chunk and index one document.

        PDFs are chunked page by page and slide decks slide by slide, with a
        whole-page (whole-slide) chunk when a page has text but no
        paragraphs. Other formats are chunked by section when the text has
        more than one heading, otherwise by paragraph; their extraction
        failures become a single ``error`` chunk.

        Raises:
            ExtractionError: If a PDF or slide deck cannot be read
        """
        metadata = DocumentMetadata.from_path(file_path, detect_file_type(file_path))
        tree: Optional[SectionTreeNode] = None

        if is_paginated(file_path):
            chunks, tree = self._chunk_pages(file_path, extractor)
        elif is_slide_deck(file_path):
            chunks = self._chunk_slides(file_path, extractor)
        else:
            chunks, tree = self._chunk_generic(file_path, extractor)

        self._documents[file_path] = metadata
        self._chunks[file_path] = chunks
        if tree is not None:
            self._trees[file_path] = tree
        else:
            self._trees.pop(file_path, None)

        metadata.total_chunks = len(chunks)
        metadata.is_processed = True
        metadata.processed_date = datetime.now()

        _log.info("Processed %s: %d chunk(s)", file_path, len(chunks))
        return metadata

    def _chunk_pages(self, file_path: str, extractor: Extractor) -> Tuple[List[TextChunk], Optional[SectionTreeNode]]:
        chunks: List[TextChunk] = []
        page_texts: List[str] = []

        for page in extractor.extract_pages(file_path):
            content = page.content or ""
            page_chunks = chunk_by_paragraph(content, file_path, page.page_number)
            if not page_chunks and content.strip():
                chunks.append(
                    TextChunk(
                        content=content,
                        chunk_index=len(chunks),
                        start_position=0,
                        end_position=len(content),
                        source_file=file_path,
                        chunk_type=ChunkType.PAGE,
                        page_number=page.page_number,
                    )
                )
            else:
                _extend_in_order(chunks, page_chunks)
            page_texts.append(content)

        tree = chunk_by_section("\n".join(page_texts), file_path, 0)
        return chunks, tree

    def _chunk_slides(self, file_path: str, extractor: Extractor) -> List[TextChunk]:
        chunks: List[TextChunk] = []

        for slide in extractor.extract_slides(file_path):
            content = slide.content or ""
            slide_chunks = chunk_by_paragraph(content, file_path, slide.slide_number)
            if not slide_chunks and content.strip():
                chunks.append(
                    TextChunk(
                        content=content,
                        chunk_index=len(chunks),
                        start_position=0,
                        end_position=len(content),
                        source_file=file_path,
                        chunk_type=ChunkType.SLIDE,
                        page_number=slide.slide_number,
                        metadata={"slide_number": str(slide.slide_number)},
                    )
                )
            else:
                _extend_in_order(chunks, slide_chunks)

        return chunks

    def _chunk_generic(self, file_path: str, extractor: Extractor) -> Tuple[List[TextChunk], Optional[SectionTreeNode]]:
        try:
            text = extractor.extract_text(file_path)
            tree = chunk_by_section(text, file_path, 0)
            if count_sections(tree) > 1:
                return flatten_section_tree(tree), tree
            return chunk_by_paragraph(text, file_path, 0), tree
        except Exception as exc:
            _log.warning("Extraction failed for %s: %s", file_path, exc)
            error_chunk = TextChunk(
                content=f"[Document extraction failed: {exc}]",
                chunk_index=0,
                source_file=file_path,
                chunk_type=ChunkType.ERROR,
            )
            return [error_chunk], None

    def split_by_size(self, text: str, source_file: str, page_number: int = 0) -> List[TextChunk]:
        """Fixed-size chunks using this indexer's size and overlap."""
        return chunk_by_size(text, source_file, self.chunk_size, self.overlap, page_number)

    def get_chunks(self, file_path: str) -> Optional[List[TextChunk]]:
        chunks = self._chunks.get(file_path)
        return list(chunks) if chunks is not None else None

    def get_tree(self, file_path: str) -> Optional[SectionTreeNode]:
        return self._trees.get(file_path)

    def get_metadata(self, file_path: str) -> Optional[DocumentMetadata]:
        return self._documents.get(file_path)

    def documents(self) -> List[DocumentMetadata]:
        return list(self._documents.values())

    def search_chunks(self, query: str, max_results: int = 5) -> List[TextChunk]:
        """Keyword search over indexed chunks, ranked by match count."""
        needle = normalize_text(query).lower()
        if not needle:
            return []

        scored: List[Tuple[int, TextChunk]] = []
        for chunks in self._chunks.values():
            for chunk in chunks:
                count = normalize_text(chunk.content).lower().count(needle)
                if count:
                    scored.append((count, chunk))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [chunk for _, chunk in scored[:max_results]]
