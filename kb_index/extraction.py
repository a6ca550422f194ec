"""Text extraction boundary: collaborator protocol and file-type detection."""

from __future__ import annotations

import logging
import os
from typing import List, NamedTuple, Protocol

_log = logging.getLogger(__name__)


PDF_EXTENSIONS = {".pdf"}
SLIDE_EXTENSIONS = {".ppt", ".pptx"}
WORD_EXTENSIONS = {".doc", ".docx"}
TEXT_EXTENSIONS = {".txt", ".md"}


class ExtractionError(Exception):
    """Raised when a source file cannot be read or parsed."""
    pass


class PageContent(NamedTuple):
    """Text of one page of a paginated document (1-based page number)."""
    page_number: int
    content: str
    source_file: str

    @property
    def citation(self) -> str:
        return f"{os.path.basename(self.source_file)}, Page {self.page_number}"


class SlideContent(NamedTuple):
    """Text of one slide of a deck (1-based slide number)."""
    slide_number: int
    content: str
    source_file: str

    @property
    def citation(self) -> str:
        return f"{os.path.basename(self.source_file)}, Slide {self.slide_number}"


class Extractor(Protocol):
    """What the indexers need from a text extraction backend."""

    def extract_pages(self, path: str) -> List[PageContent]:
        ...

    def extract_slides(self, path: str) -> List[SlideContent]:
        ...

    def extract_text(self, path: str) -> str:
        ...


def _extension(path: str) -> str:
    return os.path.splitext(path or "")[1].lower()


def is_paginated(path: str) -> bool:
    return _extension(path) in PDF_EXTENSIONS


def is_slide_deck(path: str) -> bool:
    return _extension(path) in SLIDE_EXTENSIONS


def is_plain_text(path: str) -> bool:
    return _extension(path) in TEXT_EXTENSIONS


def detect_file_type(path: str) -> str:
    """Mime-like type string derived from the file extension."""
    ext = _extension(path)
    if ext in PDF_EXTENSIONS:
        return "application/pdf"
    if ext in SLIDE_EXTENSIONS:
        return "application/vnd.ms-powerpoint"
    if ext in WORD_EXTENSIONS:
        return "application/msword"
    return "application/octet-stream"


class TextFileExtractor:
    """
    Extractor for plain-text sources.

    A text file is treated as a single page. Only plain-text extensions are
    read; binary formats (PDF, slide decks, Word) need a dedicated backend
    and are rejected here.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def _read(self, path: str) -> str:
        if not os.path.isfile(path):
            raise ExtractionError(f"File does not exist: {path}")
        try:
            with open(path, "r", encoding=self.encoding) as handle:
                return handle.read()
        except UnicodeDecodeError as exc:
            _log.warning("Strict decode failed for %s, retrying in degraded mode: %s", path, exc)
        except OSError as exc:
            raise ExtractionError(f"Cannot read {path}: {exc}") from exc
        try:
            with open(path, "r", encoding=self.encoding, errors="replace") as handle:
                return handle.read()
        except OSError as exc:
            raise ExtractionError(f"Cannot read {path}: {exc}") from exc

    def extract_text(self, path: str) -> str:
        if not is_plain_text(path):
            raise ExtractionError(f"Binary document needs a dedicated extractor: {path}")
        return self._read(path)

    def extract_pages(self, path: str) -> List[PageContent]:
        return [PageContent(1, self.extract_text(path), path)]

    def extract_slides(self, path: str) -> List[SlideContent]:
        raise ExtractionError(f"Not a slide deck: {path}")
