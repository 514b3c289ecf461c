"""
Vector store interface and shared types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple


@dataclass(frozen=True)
class DocumentChunk:
    id: str
    content: str
    metadata: Dict[str, Any]
    embedding: List[float] = field(default_factory=list, repr=False)

    @property
    def path(self) -> str:
        return self.metadata.get("path", "")


@dataclass(frozen=True)
class SearchResult:
    chunk: DocumentChunk
    similarity: float


class VectorStore(Protocol):
    def insert(self, chunks: Sequence[DocumentChunk]) -> None:
        ...

    def query(
        self,
        query_embedding: Sequence[float],
        top_k: int,
        prefix: str | None = None,
    ) -> List[Tuple[DocumentChunk, float]]:
        ...

    def delete_by_prefix(self, prefix: str) -> int:
        ...

    def count(self) -> int:
        ...


__all__ = ["DocumentChunk", "SearchResult", "VectorStore"]
