"""
Meeting transcripts: segment, index as a document, and summarise on request.
"""

from __future__ import annotations

import logging
import re
from typing import List

from codeask.config import settings
from codeask.errors import CodeAskError, EmbeddingFailure, NotFoundError
from codeask.indexing.index import EmbeddingIndex
from codeask.llm.provider import Synthesizer, synthesize_with_deadline
from codeask.models.entities import Meeting, MeetingSegment, RepositoryStatus, utcnow
from codeask.models.results import ContextSnippet
from codeask.storage.memory import InMemoryStorage

logger = logging.getLogger(__name__)

MAX_SEGMENTS = 50
SUMMARY_INPUT_CHARS = 8000
TRANSCRIPT_PATH = "transcript.txt"
SUMMARY_PROMPT = "Provide a concise structured summary of this meeting transcript."

_BLANK_LINES = re.compile(r"\n\s*\n")


def meeting_document_id(meeting_id: str) -> str:
    return f"meeting_{meeting_id}"


def split_segments(transcript: str, limit: int = MAX_SEGMENTS) -> List[str]:
    return [segment for segment in _BLANK_LINES.split(transcript) if segment.strip()][:limit]


class TranscriptService:
    def __init__(
        self,
        storage: InMemoryStorage,
        index: EmbeddingIndex,
        synthesizer: Synthesizer,
        synthesis_timeout: float = settings.synthesis_timeout_sec,
    ) -> None:
        self.storage = storage
        self.index = index
        self.synthesizer = synthesizer
        self.synthesis_timeout = synthesis_timeout

    async def ingest(self, transcript: str, title: str | None = None, source: str | None = None) -> Meeting:
        meeting = await self.storage.create_meeting(
            Meeting(
                title=title or "Untitled Meeting",
                source=source or "upload",
                raw_transcript=transcript,
            )
        )

        for order, content in enumerate(split_segments(transcript)):
            await self.storage.create_meeting_segment(MeetingSegment(meeting_id=meeting.id, order=order, content=content))

        try:
            await self.index.add_document(meeting_document_id(meeting.id), transcript, {"path": TRANSCRIPT_PATH})
        except EmbeddingFailure as exc:
            logger.warning("Transcript only partially indexed", extra={"meeting_id": meeting.id, "error_msg": exc.message})

        return meeting

    async def summarize(self, meeting_id: str) -> Meeting:
        meeting = await self.storage.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError(f"Meeting not found: {meeting_id}", {"meeting_id": meeting_id})

        segments = await self.storage.get_meeting_segments(meeting_id)
        joined = "\n".join(segment.content for segment in segments)
        try:
            answer = await synthesize_with_deadline(
                self.synthesizer,
                SUMMARY_PROMPT,
                [ContextSnippet(path=TRANSCRIPT_PATH, content=joined[:SUMMARY_INPUT_CHARS])],
                "Meeting Transcript",
                timeout=self.synthesis_timeout,
            )
        except CodeAskError as exc:
            logger.warning("Meeting summary failed", extra={"meeting_id": meeting_id, "error_msg": exc.message})
            return await self.storage.update_meeting(meeting_id, status=RepositoryStatus.ERROR)

        return await self.storage.update_meeting(
            meeting_id,
            summary=answer.answer,
            status=RepositoryStatus.READY,
            processed_at=utcnow(),
        )


__all__ = ["TranscriptService", "split_segments", "meeting_document_id"]
