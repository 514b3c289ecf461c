"""
Context retrieval: question -> top-k snippets for one repository.
"""

from __future__ import annotations

import logging
from typing import List

from codeask.config import settings
from codeask.errors import EmbeddingFailure
from codeask.indexing.index import EmbeddingIndex, repository_prefix
from codeask.models.results import ContextSnippet

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = settings.context_top_k


class ContextRetriever:
    def __init__(self, index: EmbeddingIndex, top_k: int = DEFAULT_TOP_K) -> None:
        if top_k <= 0:
            raise ValueError("top_k must be positive")
        self.index = index
        self.top_k = top_k

    async def get_relevant_context(self, question: str, repository_id: str) -> List[ContextSnippet]:
        """
        Return at most ``top_k`` snippets ordered by descending similarity.

        An embedding failure degrades to an empty context instead of failing the question.
        """
        try:
            results = await self.index.search(question, limit=self.top_k, prefix=repository_prefix(repository_id))
        except EmbeddingFailure as exc:
            logger.warning(
                "Context search failed, continuing without context",
                extra={"repository_id": repository_id, "error": str(exc)},
            )
            return []

        logger.info(
            "Retrieved context",
            extra={
                "repository_id": repository_id,
                "returned": len(results),
                "results": [{"chunk_id": r.chunk.id, "similarity": round(r.similarity, 3)} for r in results],
            },
        )
        return [ContextSnippet(path=r.chunk.path, content=r.chunk.content) for r in results]


__all__ = ["ContextRetriever", "DEFAULT_TOP_K"]
