"""Incremental directory indexing and top-K semantic retrieval."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from .chunking import chunk_by_size
from .config import Settings
from .embeddings import Embedder, EmbeddingError
from .extraction import PDF_EXTENSIONS, SLIDE_EXTENSIONS, TEXT_EXTENSIONS, Extractor, is_slide_deck
from .indexer import scan_documents
from .schemas import EmbeddingItem, Match
from .search import get_strategy
from .store import ProcessedRegistry, VectorStore
from .utils import file_mtime_ms, shorten

_log = logging.getLogger(__name__)


DEFAULT_EXTENSIONS = PDF_EXTENSIONS | SLIDE_EXTENSIONS | TEXT_EXTENSIONS


@dataclass
class IndexReport:
    """Outcome of one ``index_directory`` run."""
    files_seen: int = 0
    skipped_unchanged: int = 0
    indexed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    chunks_stored: int = 0
    embedding_failures: int = 0


class Retriever:
    """
    Embeds document chunks into a vector store and answers similarity queries.

    One instance serves one corpus: it owns its vector store and its
    processed-source registry. Nothing here is safe for concurrent indexing
    or pruning against the same files.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        registry: ProcessedRegistry,
        chunk_size: int = 400,
        overlap: int = 200,
        top_k: int = 5,
        threshold: float = 0.7,
        model: Optional[str] = None,
        strategy: str = "linear",
        strict_dimensions: bool = False,
        extensions: Optional[Iterable[str]] = None,
        show_progress: bool = False,
    ):
        self.embedder = embedder
        self.store = store
        self.registry = registry
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.top_k = top_k
        self.threshold = threshold
        self.model = model
        self.strategy = get_strategy(strategy, strict_dimensions=strict_dimensions)
        self.extensions = set(extensions or DEFAULT_EXTENSIONS)
        self.show_progress = show_progress

    @classmethod
    def from_settings(cls, settings: Settings, embedder: Embedder, **kwargs) -> "Retriever":
        """Build a retriever with store and registry at the configured paths."""
        return cls(
            embedder=embedder,
            store=VectorStore(settings.vector_file),
            registry=ProcessedRegistry(settings.processed_file),
            chunk_size=settings.chunk_size,
            overlap=settings.overlap,
            top_k=settings.top_k,
            threshold=settings.similarity_threshold,
            model=settings.embedding_model,
            strategy=settings.search_strategy,
            strict_dimensions=settings.strict_dimensions,
            **kwargs,
        )

    # ---- indexing ----

    def _extract_units(self, path: str, extractor: Extractor) -> List[Tuple[int, str]]:
        """(page or slide number, text) pairs for one source file."""
        if is_slide_deck(path):
            return [(slide.slide_number, slide.content) for slide in extractor.extract_slides(path)]
        return [(page.page_number, page.content) for page in extractor.extract_pages(path)]

    def _embed_file(self, path: str, extractor: Extractor, report: IndexReport) -> List[EmbeddingItem]:
        items: List[EmbeddingItem] = []
        for page_number, text in self._extract_units(path, extractor):
            if not text or not text.strip():
                continue
            chunks = chunk_by_size(text, path, self.chunk_size, self.overlap, page_number, snap_to_breaks=False)
            for chunk in chunks:
                try:
                    vector = self.get_embedding(chunk.content)
                except EmbeddingError as exc:
                    report.embedding_failures += 1
                    _log.warning("Embedding failed; skipped chunk %s#%d: %s", path, chunk.chunk_index, exc)
                    continue
                items.append(
                    EmbeddingItem(
                        text=chunk.content,
                        vector=vector,
                        source_path=path,
                        page_start=page_number,
                        page_end=page_number,
                        model=self.model,
                    )
                )
        return items

    def index_directory(self, root_dir: str, extractor: Extractor) -> IndexReport:
        """
        Index new or modified documents under ``root_dir``.

        A file whose modification time equals the registry entry is skipped
        without extraction or embedding. Otherwise it is re-extracted,
        re-chunked and re-embedded, replacing its previous vectors. The
        registry is only updated when at least one chunk was stored, so
        failed files are retried on the next run.
        """
        report = IndexReport()
        if not os.path.isdir(root_dir):
            _log.error("Root directory does not exist or is not a directory: %s", root_dir)
            return report

        files, skipped = scan_documents(root_dir, self.extensions)
        report.files_seen = len(files)
        for entry in skipped:
            _log.debug("Skipped %s: %s", entry["relpath"], entry["reason"])
        _log.info("Found %d document(s) under %s", len(files), root_dir)

        for path in tqdm(files, desc="Indexing documents", disable=not self.show_progress):
            key = os.path.abspath(path)
            try:
                mtime = file_mtime_ms(key)
            except OSError as exc:
                _log.error("Cannot stat %s: %s", key, exc)
                report.failed.append(key)
                continue

            if self.registry.get(key) == mtime:
                _log.debug("Skipping unchanged file: %s", key)
                report.skipped_unchanged += 1
                continue

            _log.info("Indexing new or modified file: %s", key)
            try:
                items = self._embed_file(key, extractor, report)
            except Exception as exc:
                _log.error("Indexing failed for %s: %s", key, exc)
                report.failed.append(key)
                continue

            if not items:
                _log.error("No chunks were stored for %s; it will be retried", key)
                report.failed.append(key)
                continue

            try:
                self.store.replace_source(key, items)
                self.registry.mark(key, mtime)
            except OSError as exc:
                _log.error("Could not persist index state for %s: %s", key, exc)
                report.failed.append(key)
                continue

            report.indexed.append(key)
            report.chunks_stored += len(items)
            _log.info("Indexed %d chunk(s) for %s", len(items), key)

        return report

    def prune_deleted_sources(self, root_dir: str) -> int:
        """
        Remove registry entries and vectors of deleted files under ``root_dir``.

        Entries outside ``root_dir`` are left alone. Both filtered states are
        computed before anything is written; the vector store is written
        first and restored if the registry write then fails, so errors leave
        both stores as they were. Returns the number of vectors removed.
        """
        root = os.path.abspath(root_dir)
        previous_items = self.store.items
        try:
            kept_entries = self.registry.filtered(root)
            kept_items = self.store.filtered(root)
        except Exception as exc:
            _log.error("Prune failed under %s: %s", root, exc)
            return 0

        removed_entries = len(self.registry) - len(kept_entries)
        removed_vectors = len(previous_items) - len(kept_items)
        try:
            if removed_vectors:
                self.store.save(kept_items)
        except Exception as exc:
            _log.error("Prune failed under %s: %s", root, exc)
            return 0

        try:
            if removed_entries:
                self.registry.save(kept_entries)
        except Exception as exc:
            _log.error("Prune failed under %s: %s", root, exc)
            if removed_vectors:
                self._restore_store(previous_items)
            return 0

        if removed_entries or removed_vectors:
            _log.info(
                "Pruned %d registry entr(ies) and %d vector(s) under %s",
                removed_entries,
                removed_vectors,
                root,
            )
        return removed_vectors

    def _restore_store(self, items: List[EmbeddingItem]) -> None:
        try:
            self.store.save(items)
        except Exception as exc:
            _log.error("Could not restore vector store %s after failed prune: %s", self.store.path, exc)

    def refresh(self, root_dir: str, extractor: Extractor) -> IndexReport:
        """Prune deleted sources, then index what is new or changed."""
        self.prune_deleted_sources(root_dir)
        return self.index_directory(root_dir, extractor)

    # ---- retrieval ----

    def get_embedding(self, text: str) -> List[float]:
        """Embed one text with the configured provider."""
        try:
            return self.embedder.embed(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding failed: {exc}") from exc

    def search_top_k(self, query_text: str, k: Optional[int] = None, threshold: Optional[float] = None) -> List[Match]:
        """
        Rank stored chunks by cosine similarity to ``query_text``.

        Items below ``threshold`` are dropped when it is positive; at most
        ``k`` matches are returned, all of them when ``k <= 0``.
        """
        if k is None:
            k = self.top_k
        if threshold is None:
            threshold = self.threshold

        query_vector = self.get_embedding(query_text)
        items = self.store.items
        if self.model and any(item.model and item.model != self.model for item in items):
            _log.warning("Vector store holds vectors from another embedding model than %s", self.model)

        matches = self.strategy.rank(query_vector, items, k, threshold)
        _log.debug("Query %r matched %d chunk(s)", shorten(query_text, 60), len(matches))
        return matches

    def search_most_similar(self, query_text: str, threshold: float = -1.0) -> str:
        """Text of the best match, or an empty string."""
        matches = self.search_top_k(query_text, 1, threshold)
        if not matches:
            return ""
        return matches[0].item.text


def build_context(matches: List[Match], limit: int = 5) -> str:
    """Concatenate matches into a cited context block for a prompt."""
    parts: List[str] = []
    for match in matches[:limit]:
        parts.append(f"[Source: {match.citation}]\n{match.item.text}\n\n")
    return "".join(parts)


def match_sources(matches: List[Match]) -> List[Dict[str, object]]:
    """Citation records for a list of matches."""
    return [
        {
            "path": match.item.source_path or "",
            "page_start": match.item.page_start,
            "page_end": match.item.page_end,
            "score": match.score,
        }
        for match in matches
    ]
