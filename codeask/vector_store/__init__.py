"""
Vector store abstractions and factories.
"""

from codeask.config import Settings, settings
from codeask.vector_store.base import DocumentChunk, SearchResult, VectorStore
from codeask.vector_store.memory_store import InMemoryVectorStore, cosine_similarity

DEFAULT_VECTOR_STORE_BACKEND = settings.vector_store_backend


def get_vector_store(config: Settings | None = None) -> VectorStore:
    """
    Factory to obtain the configured VectorStore instance.
    The backend is chosen once at startup and never mixed per call.
    """
    config = config or settings
    backend = config.vector_store_backend.lower()
    if backend == "memory":
        return InMemoryVectorStore()
    if backend == "chroma":
        from codeask.vector_store.chroma_store import ChromaVectorStore

        return ChromaVectorStore(persist_directory=config.vector_store_path)
    raise ValueError(f"Unsupported vector store backend: {backend}")


__all__ = [
    "DEFAULT_VECTOR_STORE_BACKEND",
    "get_vector_store",
    "DocumentChunk",
    "SearchResult",
    "VectorStore",
    "InMemoryVectorStore",
    "cosine_similarity",
]
