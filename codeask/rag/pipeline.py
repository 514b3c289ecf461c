"""
Non-streaming question answering: retrieve context, synthesize, persist the query.
"""

from __future__ import annotations

import logging
from typing import Tuple

from codeask.config import settings
from codeask.errors import NotReadyError, ValidationError
from codeask.llm.provider import Synthesizer, synthesize_with_deadline
from codeask.models.entities import QueryRecord, Repository, RepositoryStatus
from codeask.models.results import Answer
from codeask.observability.metrics import MetricsRegistry
from codeask.rag.retriever import ContextRetriever
from codeask.rag.streaming import AnswerStreamCoordinator, normalize_question
from codeask.storage.memory import InMemoryStorage

logger = logging.getLogger(__name__)


def ensure_answerable(repository: Repository, question: str | None) -> str:
    """Check the preconditions shared by both question endpoints and return the question as asked, trimmed."""
    if not normalize_question(question):
        raise ValidationError("Question must not be empty", field="question")
    if repository.status is not RepositoryStatus.READY:
        raise NotReadyError(repository.id, repository.status.value)
    return question.strip()


class QAService:
    def __init__(
        self,
        retriever: ContextRetriever,
        synthesizer: Synthesizer,
        storage: InMemoryStorage,
        synthesis_timeout: float = settings.synthesis_timeout_sec,
        token_delay: float | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.storage = storage
        self.synthesis_timeout = synthesis_timeout
        self.token_delay = token_delay
        self.metrics = metrics or MetricsRegistry()

    async def answer(self, repository: Repository, question: str) -> Tuple[QueryRecord, Answer]:
        asked = ensure_answerable(repository, question)
        context = await self.retriever.get_relevant_context(asked, repository.id)
        answer = await synthesize_with_deadline(
            self.synthesizer,
            asked,
            context,
            repository.describe(),
            timeout=self.synthesis_timeout,
        )

        record = await self.storage.create_query(
            QueryRecord(
                repository_id=repository.id,
                question=asked,
                answer=answer.answer,
                sources=answer.sources,
                confidence=answer.confidence,
            )
        )
        self.metrics.inc("questions.answered")
        logger.info(
            "Question answered",
            extra={"repository_id": repository.id, "query_id": record.id, "sources": answer.sources},
        )
        return record, answer

    def stream_coordinator(self) -> AnswerStreamCoordinator:
        """A fresh coordinator for one streaming session."""
        kwargs = {"synthesis_timeout": self.synthesis_timeout}
        if self.token_delay is not None:
            kwargs["token_delay"] = self.token_delay
        return AnswerStreamCoordinator(self.retriever, self.synthesizer, **kwargs)


__all__ = ["QAService", "ensure_answerable"]
