"""
Embedding index: chunk documents, embed each chunk, and answer similarity queries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from codeask.config import settings
from codeask.embeddings.client import Embedder
from codeask.errors import EmbeddingFailure
from codeask.indexing.chunker import split_into_chunks
from codeask.vector_store.base import DocumentChunk, SearchResult, VectorStore

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 5


def chunk_id(document_id: str, sequence: int) -> str:
    return f"{document_id}_chunk_{sequence}"


def repository_prefix(repository_id: str) -> str:
    return f"{repository_id}_"


class EmbeddingIndex:
    """
    Owns chunk id -> (content, metadata, vector) through a ``VectorStore`` backend.

    ``add_document`` is at-least-effort: an embedding failure stops that document and
    propagates, while chunks already stored for it stay in the index.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        chunk_size: int = settings.chunk_size_chars,
        embed_timeout: float = settings.embedding_timeout_sec,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.embed_timeout = embed_timeout

    async def embed(self, text: str) -> List[float]:
        try:
            return await asyncio.wait_for(self.embedder.embed(text), timeout=self.embed_timeout)
        except EmbeddingFailure:
            raise
        except asyncio.TimeoutError as exc:
            raise EmbeddingFailure("Embedding timed out", {"timeout_sec": self.embed_timeout}) from exc
        except Exception as exc:
            raise EmbeddingFailure("Failed to generate embedding", {"error": str(exc)}) from exc

    async def add_document(self, document_id: str, content: str, metadata: Dict[str, Any]) -> int:
        stored = 0
        for sequence, piece in enumerate(split_into_chunks(content, self.chunk_size)):
            embedding = await self.embed(piece.content)
            self.store.insert(
                [
                    DocumentChunk(
                        id=chunk_id(document_id, sequence),
                        content=piece.content,
                        metadata={**metadata, "start_line": piece.start_line, "end_line": piece.end_line},
                        embedding=embedding,
                    )
                ]
            )
            stored += 1

        logger.debug("Indexed document", extra={"document_id": document_id, "chunks": stored})
        return stored

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT, prefix: str | None = None) -> List[SearchResult]:
        query_embedding = await self.embed(query)
        hits = self.store.query(query_embedding, top_k=limit, prefix=prefix)
        return [SearchResult(chunk=chunk, similarity=score) for chunk, score in hits]

    def clear(self, prefix: str) -> int:
        return self.store.delete_by_prefix(prefix)

    def clear_repository(self, repository_id: str) -> int:
        removed = self.clear(repository_prefix(repository_id))
        logger.info("Cleared repository chunks", extra={"repository_id": repository_id, "removed": removed})
        return removed

    def count(self) -> int:
        return self.store.count()


__all__ = ["EmbeddingIndex", "chunk_id", "repository_prefix", "DEFAULT_SEARCH_LIMIT"]
