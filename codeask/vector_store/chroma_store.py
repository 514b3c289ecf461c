"""
Chroma-based VectorStore implementation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

import chromadb

from codeask.config import settings
from codeask.vector_store.base import DocumentChunk, VectorStore

CHROMA_COLLECTION = "codeask_chunks"
CHROMA_PERSIST_DIR = settings.vector_store_path

logger = logging.getLogger(__name__)


class ChromaVectorStore(VectorStore):
    def __init__(
        self,
        persist_directory: str | None = CHROMA_PERSIST_DIR,
        collection_name: str = CHROMA_COLLECTION,
        client: Any | None = None,
    ) -> None:
        self.persist_directory = persist_directory
        self.collection_name = collection_name
        if client is not None:
            self.client = client
        elif persist_directory:
            self.client = chromadb.PersistentClient(path=persist_directory)
        else:
            self.client = chromadb.EphemeralClient()
        self.collection = self.client.get_or_create_collection(
            self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )
        logger.info(
            "ChromaVectorStore initialised",
            extra={"persist_directory": self.persist_directory, "collection": self.collection_name},
        )

    def insert(self, chunks: Sequence[DocumentChunk]) -> None:
        if not chunks:
            return

        self.collection.upsert(
            ids=[chunk.id for chunk in chunks],
            embeddings=[list(chunk.embedding) for chunk in chunks],
            metadatas=[_clean_metadata(chunk.metadata) for chunk in chunks],
            documents=[chunk.content for chunk in chunks],
        )
        logger.debug("Upserted chunks into Chroma", extra={"count": len(chunks), "collection": self.collection_name})

    def query(
        self,
        query_embedding: Sequence[float],
        top_k: int,
        prefix: str | None = None,
    ) -> List[Tuple[DocumentChunk, float]]:
        total = self.collection.count()
        if top_k <= 0 or total == 0:
            return []

        # Chroma has no id-prefix filter, so scoped queries over-fetch and filter here.
        n_results = total if prefix else min(top_k, total)
        result = self.collection.query(
            query_embeddings=[list(query_embedding)],
            n_results=n_results,
            include=["documents", "metadatas", "distances"],
        )

        ids = result.get("ids", [[]])[0] or []
        texts = result.get("documents", [[]])[0] or []
        metadatas = result.get("metadatas", [[]])[0] or []
        distances = result.get("distances", [[]])[0] or []

        hits: List[Tuple[DocumentChunk, float]] = []
        for chunk_id, text, metadata, distance in zip(ids, texts, metadatas, distances):
            if prefix and not chunk_id.startswith(prefix):
                continue
            chunk = DocumentChunk(id=chunk_id, content=text or "", metadata=dict(metadata or {}))
            # cosine space reports 1 - similarity
            hits.append((chunk, 1.0 - float(distance)))
            if len(hits) >= top_k:
                break
        return hits

    def delete_by_prefix(self, prefix: str) -> int:
        existing = self.collection.get(include=[])
        doomed = [chunk_id for chunk_id in existing.get("ids", []) if chunk_id.startswith(prefix)]
        if doomed:
            self.collection.delete(ids=doomed)
            logger.info("Deleted Chroma chunks by prefix", extra={"prefix": prefix, "count": len(doomed)})
        return len(doomed)

    def count(self) -> int:
        return self.collection.count()


def _clean_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    # Chroma rejects None metadata values
    return {key: value for key, value in metadata.items() if value is not None}


__all__ = ["ChromaVectorStore", "CHROMA_COLLECTION", "CHROMA_PERSIST_DIR"]
