"""
Persisted entities: repositories, their files and commits, query records and meetings.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from codeask.models.results import RepositoryAnalysis


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RepositoryStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class Repository(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    full_name: str
    url: str
    description: str | None = None
    language: str | None = None
    status: RepositoryStatus = RepositoryStatus.PENDING
    file_count: int = 0
    last_analyzed: datetime | None = None
    analysis: RepositoryAnalysis | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    def describe(self) -> str:
        """Short context line handed to the synthesizer."""
        if self.language:
            return f"Repository: {self.full_name} ({self.language})"
        return f"Repository: {self.full_name}"


class RepositoryFile(BaseModel):
    id: str = Field(default_factory=_new_id)
    repository_id: str
    path: str
    content: str
    language: str | None = None
    size: int = 0


class Commit(BaseModel):
    id: str = Field(default_factory=_new_id)
    repository_id: str
    sha: str
    message: str
    author: str
    author_email: str | None = None
    date: datetime | None = None
    additions: int = 0
    deletions: int = 0
    ai_summary: str | None = None


class QueryRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    repository_id: str
    question: str
    answer: str
    sources: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    created_at: datetime = Field(default_factory=utcnow)


class Meeting(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str = "Untitled Meeting"
    source: str = "upload"
    raw_transcript: str
    summary: str | None = None
    status: RepositoryStatus = RepositoryStatus.PROCESSING
    processed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)


class MeetingSegment(BaseModel):
    id: str = Field(default_factory=_new_id)
    meeting_id: str
    order: int
    content: str


__all__ = [
    "RepositoryStatus",
    "Repository",
    "RepositoryFile",
    "Commit",
    "QueryRecord",
    "Meeting",
    "MeetingSegment",
    "utcnow",
]
