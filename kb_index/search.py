"""Similarity ranking strategies for the retriever."""

from __future__ import annotations

from typing import List, Sequence

import faiss
import numpy as np

from .schemas import EmbeddingItem, Match


def cosine_similarity(a: Sequence[float], b: Sequence[float], strict: bool = False) -> float:
    """
    Cosine similarity of two vectors.

    Vectors of different length are compared over the shorter prefix unless
    ``strict`` is set, in which case a ValueError is raised.
    """
    if len(a) != len(b):
        if strict:
            raise ValueError(f"Vector dimension mismatch: {len(a)} != {len(b)}")
        size = min(len(a), len(b))
        a, b = a[:size], b[:size]

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def _select(matches: List[Match], k: int, threshold: float) -> List[Match]:
    if threshold > 0:
        matches = [match for match in matches if match.score >= threshold]
    matches.sort(key=lambda match: match.score, reverse=True)
    if k > 0:
        return matches[:k]
    return matches


class LinearScanSearch:
    """Unindexed scan over every stored vector."""

    name = "linear"

    def __init__(self, strict_dimensions: bool = False):
        self.strict_dimensions = strict_dimensions

    def rank(self, query: Sequence[float], items: Sequence[EmbeddingItem], k: int, threshold: float) -> List[Match]:
        matches = [
            Match(item=item, score=cosine_similarity(query, item.vector, strict=self.strict_dimensions))
            for item in items
        ]
        return _select(matches, k, threshold)


class FaissFlatSearch:
    """Exact cosine search with a FAISS inner-product index over normalized vectors."""

    name = "faiss"

    def rank(self, query: Sequence[float], items: Sequence[EmbeddingItem], k: int, threshold: float) -> List[Match]:
        if not items:
            return []

        dims = {len(item.vector) for item in items}
        if len(dims) != 1 or len(query) not in dims:
            raise ValueError(f"FAISS search needs uniform dimensions, got {sorted(dims)} and query {len(query)}")

        vector_array = np.array([item.vector for item in items], dtype="float32")
        faiss.normalize_L2(vector_array)
        index = faiss.IndexFlatIP(vector_array.shape[1])
        index.add(vector_array)

        query_array = np.array([query], dtype="float32")
        faiss.normalize_L2(query_array)
        scores, indices = index.search(query_array, len(items))

        matches: List[Match] = []
        for idx, score in zip(indices[0], scores[0]):
            if idx == -1:
                break
            matches.append(Match(item=items[int(idx)], score=float(score)))
        return _select(matches, k, threshold)


def get_strategy(name: str, strict_dimensions: bool = False):
    """Return the ranking strategy registered under ``name``."""
    if name == LinearScanSearch.name:
        return LinearScanSearch(strict_dimensions=strict_dimensions)
    if name == FaissFlatSearch.name:
        return FaissFlatSearch()
    raise ValueError(f"Unknown search strategy: {name}")
