"""Shared fixtures and fake collaborators for KB Index tests."""

import os
import string

import pytest

from kb_index.embeddings import EmbeddingProviderError
from kb_index.extraction import ExtractionError, PageContent, SlideContent
from kb_index.store import ProcessedRegistry, VectorStore


def letter_vector(text):
    """Letter and digit count vector plus a constant dimension so it is never zero."""
    lower = text.lower()
    return [float(lower.count(ch)) for ch in string.ascii_lowercase + string.digits] + [1.0]


class FakeEmbedder:
    """Deterministic embedder that records every call."""

    def __init__(self, fail_on=(), overrides=None):
        self.calls = []
        self.fail_on = tuple(fail_on)
        self.overrides = dict(overrides or {})

    def embed(self, text):
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise EmbeddingProviderError(f"provider rejected: {text[:20]}")
        if text in self.overrides:
            return list(self.overrides[text])
        return letter_vector(text)


class FakeExtractor:
    """Extractor serving canned pages/slides/text keyed by file name."""

    def __init__(self, pages=None, slides=None, texts=None, broken=()):
        self.pages = dict(pages or {})
        self.slides = dict(slides or {})
        self.texts = dict(texts or {})
        self.broken = set(broken)
        self.calls = []

    def _check(self, path):
        name = os.path.basename(path)
        self.calls.append(name)
        if name in self.broken:
            raise ExtractionError(f"corrupt file: {name}")
        return name

    def extract_pages(self, path):
        name = self._check(path)
        return [PageContent(number, text, path) for number, text in self.pages.get(name, [])]

    def extract_slides(self, path):
        name = self._check(path)
        return [SlideContent(number, text, path) for number, text in self.slides.get(name, [])]

    def extract_text(self, path):
        name = self._check(path)
        if name not in self.texts:
            raise ExtractionError(f"no text for {name}")
        return self.texts[name]


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store_paths(tmp_path):
    state = tmp_path / "state"
    return str(state / "embeddings.json"), str(state / "processed.json")


@pytest.fixture
def vector_store(store_paths):
    return VectorStore(store_paths[0])


@pytest.fixture
def registry(store_paths):
    return ProcessedRegistry(store_paths[1])


@pytest.fixture
def corpus(tmp_path):
    """A document root with placeholder files (content comes from the extractor)."""
    root = tmp_path / "docs"
    root.mkdir()
    return root


def make_file(directory, name, content="placeholder", mtime=None):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return str(path)
