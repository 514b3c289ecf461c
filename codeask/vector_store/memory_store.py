"""
In-memory, linear-scan VectorStore implementation.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Sequence, Tuple

from codeask.vector_store.base import DocumentChunk, VectorStore

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``.

    Returns 0.0 when the vectors differ in length or either has zero magnitude.
    """
    if len(a) != len(b):
        return 0.0
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


class InMemoryVectorStore(VectorStore):
    """Dict-backed store; every query scans all chunks under the requested prefix."""

    def __init__(self) -> None:
        self._chunks: Dict[str, DocumentChunk] = {}

    def insert(self, chunks: Sequence[DocumentChunk]) -> None:
        for chunk in chunks:
            self._chunks[chunk.id] = chunk

    def query(
        self,
        query_embedding: Sequence[float],
        top_k: int,
        prefix: str | None = None,
    ) -> List[Tuple[DocumentChunk, float]]:
        if top_k <= 0:
            return []

        snapshot = list(self._chunks.values())
        scored: List[Tuple[DocumentChunk, float]] = [
            (chunk, cosine_similarity(query_embedding, chunk.embedding))
            for chunk in snapshot
            if prefix is None or chunk.id.startswith(prefix)
        ]
        # sorted() is stable, so equal scores keep insertion order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)
        return scored[:top_k]

    def delete_by_prefix(self, prefix: str) -> int:
        doomed = [chunk_id for chunk_id in self._chunks if chunk_id.startswith(prefix)]
        for chunk_id in doomed:
            del self._chunks[chunk_id]
        if doomed:
            logger.info("Deleted chunks by prefix", extra={"prefix": prefix, "count": len(doomed)})
        return len(doomed)

    def count(self) -> int:
        return len(self._chunks)

    def ids(self) -> List[str]:
        return list(self._chunks)


__all__ = ["InMemoryVectorStore", "cosine_similarity"]
