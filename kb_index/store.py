"""Flat-file vector store and processed-source registry."""

from __future__ import annotations

import json
import logging
import os
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set

from .schemas import EmbeddingItem
from .utils import is_under_root, write_json_atomic

_log = logging.getLogger(__name__)


def _read_json(path: str):
    """Load a JSON file; None when missing or unreadable."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, ValueError) as exc:
        _log.error("Failed to load %s: %s", path, exc)
        return None


class VectorStore:
    """
    Ordered in-memory list of embedded chunks mirrored to a JSON file.

    The file is loaded once at construction and rewritten in full on every
    mutation. There is no locking: concurrent writers lose updates.
    """

    def __init__(self, path: str):
        self.path = path
        self._items: List[EmbeddingItem] = []
        self._load()

    def _load(self) -> None:
        data = _read_json(self.path)
        if not data:
            return
        for raw in data:
            self._items.append(EmbeddingItem.model_validate(raw))
        _log.info("Loaded %d vectors from %s", len(self._items), self.path)

    def save(self, items: Optional[List[EmbeddingItem]] = None) -> None:
        """Write ``items`` (default: current items) and adopt them once on disk."""
        items = list(self._items if items is None else items)
        write_json_atomic(self.path, [item.model_dump(by_alias=True) for item in items])
        self._items = items

    @property
    def items(self) -> List[EmbeddingItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[EmbeddingItem]:
        return iter(list(self._items))

    def sources(self) -> Set[str]:
        return {item.source_path for item in self._items if item.source_path}

    def add(self, item: EmbeddingItem) -> None:
        self.save(self._items + [item])

    def extend(self, items: Iterable[EmbeddingItem]) -> None:
        items = list(items)
        if not items:
            return
        self.save(self._items + items)

    def replace_source(self, source_path: str, items: Iterable[EmbeddingItem]) -> None:
        """Swap every item of ``source_path`` for ``items`` in one rewrite."""
        kept = [item for item in self._items if item.source_path != source_path]
        kept.extend(items)
        self.save(kept)

    def filtered(self, root: str, exists: Callable[[str], bool] = os.path.exists) -> List[EmbeddingItem]:
        """
        Items that survive a prune of ``root``, without touching the store.

        An item is dropped when its source lies under ``root`` and no longer
        exists. Items outside ``root`` (or without a source) are kept.
        """
        return [
            item
            for item in self._items
            if not (item.source_path and is_under_root(item.source_path, root) and not exists(item.source_path))
        ]

    def prune(self, root: str, exists: Callable[[str], bool] = os.path.exists) -> int:
        """Drop items of deleted sources under ``root``. Returns the number removed."""
        kept = self.filtered(root, exists)
        removed = len(self._items) - len(kept)
        if removed:
            self.save(kept)
        return removed


class ProcessedRegistry:
    """Absolute source path -> modification time (ms) of its last successful index."""

    def __init__(self, path: str):
        self.path = path
        self._entries: Dict[str, int] = {}
        self._load()

    def _load(self) -> None:
        data = _read_json(self.path)
        if not data:
            return
        for key, value in data.items():
            self._entries[key] = int(value)

    def save(self, entries: Optional[Dict[str, int]] = None) -> None:
        entries = dict(self._entries if entries is None else entries)
        write_json_atomic(self.path, entries)
        self._entries = entries

    def get(self, path: str) -> Optional[int]:
        return self._entries.get(path)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._entries)

    def mark(self, path: str, mtime: int) -> None:
        entries = dict(self._entries)
        entries[path] = int(mtime)
        self.save(entries)

    def filtered(self, root: str, exists: Callable[[str], bool] = os.path.exists) -> Dict[str, int]:
        """Entries that survive a prune of ``root``, without touching the registry."""
        return {
            key: value
            for key, value in self._entries.items()
            if not (is_under_root(key, root) and not exists(key))
        }

    def prune(self, root: str, exists: Callable[[str], bool] = os.path.exists) -> int:
        kept = self.filtered(root, exists)
        removed = len(self._entries) - len(kept)
        if removed:
            self.save(kept)
        return removed
