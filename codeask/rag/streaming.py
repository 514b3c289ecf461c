"""
Answer streaming: retrieve, synthesize once, then replay the answer token by token.
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import AsyncIterator, List

from codeask.config import settings
from codeask.errors import CodeAskError
from codeask.llm.provider import Synthesizer, synthesize_with_deadline
from codeask.models.entities import Repository
from codeask.rag.events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent
from codeask.rag.retriever import ContextRetriever

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DELAY_SEC = settings.stream_token_delay_ms / 1000
GENERIC_STREAM_ERROR = "Stream failed"

_WHITESPACE_RUN = re.compile(r"(\s+)")


class StreamState(str, Enum):
    IDLE = "idle"
    RETRIEVING = "retrieving"
    SYNTHESIZING = "synthesizing"
    EMITTING = "emitting"
    DONE = "done"
    ERRORED = "errored"


def tokenize_answer(answer: str) -> List[str]:
    """Split on whitespace runs, keeping the runs as tokens; ``"".join`` restores the input."""
    return [token for token in _WHITESPACE_RUN.split(answer) if token]


def normalize_question(text: str | None) -> str:
    return " ".join((text or "").strip().split())


class AnswerStreamCoordinator:
    """
    One coordinator serves one question to one client.

    Emits zero or more ``TokenEvent`` followed by exactly one ``DoneEvent`` or ``ErrorEvent``.
    Closing the iterator (client disconnect) cancels the pending inter-token sleep, so no
    work continues in the background.
    """

    def __init__(
        self,
        retriever: ContextRetriever,
        synthesizer: Synthesizer,
        token_delay: float = DEFAULT_TOKEN_DELAY_SEC,
        synthesis_timeout: float = settings.synthesis_timeout_sec,
    ) -> None:
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.token_delay = token_delay
        self.synthesis_timeout = synthesis_timeout
        self.state = StreamState.IDLE

    async def stream(self, question: str | None, repository: Repository) -> AsyncIterator[StreamEvent]:
        if self.state is not StreamState.IDLE:
            raise RuntimeError("AnswerStreamCoordinator instances are single-use")

        if not normalize_question(question):
            self.state = StreamState.ERRORED
            yield ErrorEvent(message="Question must not be empty")
            return

        asked = question.strip()
        try:
            self.state = StreamState.RETRIEVING
            context = await self.retriever.get_relevant_context(asked, repository.id)

            self.state = StreamState.SYNTHESIZING
            answer = await synthesize_with_deadline(
                self.synthesizer,
                asked,
                context,
                repository.describe(),
                timeout=self.synthesis_timeout,
            )
        except CodeAskError as exc:
            self.state = StreamState.ERRORED
            logger.warning(
                "Answer stream failed",
                extra={"repository_id": repository.id, "error_type": type(exc).__name__, "error_msg": exc.message},
            )
            yield ErrorEvent(message=exc.message)
            return
        except Exception:
            self.state = StreamState.ERRORED
            logger.exception("Unexpected error before streaming", extra={"repository_id": repository.id})
            yield ErrorEvent(message=GENERIC_STREAM_ERROR)
            return

        self.state = StreamState.EMITTING
        tokens = tokenize_answer(answer.answer)
        position = 0
        try:
            for position, token in enumerate(tokens):
                if position and self.token_delay > 0:
                    await asyncio.sleep(self.token_delay)
                yield TokenEvent(chunk=token)
        except (asyncio.CancelledError, GeneratorExit):
            self.state = StreamState.ERRORED
            logger.info(
                "Client disconnected mid-stream",
                extra={"repository_id": repository.id, "emitted": position, "total": len(tokens)},
            )
            raise

        self.state = StreamState.DONE
        logger.info(
            "Answer stream completed",
            extra={"repository_id": repository.id, "tokens": len(tokens), "sources": answer.sources},
        )
        yield DoneEvent(sources=answer.sources, confidence=answer.confidence)


__all__ = [
    "AnswerStreamCoordinator",
    "StreamState",
    "tokenize_answer",
    "normalize_question",
    "DEFAULT_TOKEN_DELAY_SEC",
]
