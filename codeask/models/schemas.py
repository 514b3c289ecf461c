from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from codeask.models.entities import Commit, Meeting, MeetingSegment, QueryRecord, Repository, RepositoryFile
from codeask.models.results import Answer


# Repositories
class CreateRepositoryRequest(BaseModel):
    """Register a repository and start ingesting it."""

    url: str = Field(..., min_length=1, description="GitHub URL or local checkout path")
    name: str | None = None
    description: str | None = None
    language: str | None = None


class RepositoryResponse(BaseModel):
    repository: Repository


class RepositoryListResponse(BaseModel):
    repositories: List[Repository]


class RepositoryDetailResponse(BaseModel):
    repository: Repository
    files: List[RepositoryFile]
    commits: List[Commit]


class CommitListResponse(BaseModel):
    commits: List[Commit]


class CommitSummaryResponse(BaseModel):
    commit: Commit
    cached: bool


# Questions
class AskRequest(BaseModel):
    """Question about one repository."""

    question: str = Field(..., description="Free-text question")


class AskResponse(BaseModel):
    query: QueryRecord
    response: Answer


class QueryListResponse(BaseModel):
    queries: List[QueryRecord]


# Meetings
class IngestMeetingRequest(BaseModel):
    transcript: str = Field(..., min_length=1)
    title: str | None = None
    source: str | None = None


class MeetingResponse(BaseModel):
    meeting: Meeting


class MeetingListResponse(BaseModel):
    meetings: List[Meeting]


class MeetingDetailResponse(BaseModel):
    meeting: Meeting
    segments: List[MeetingSegment]


__all__ = [
    "CreateRepositoryRequest",
    "RepositoryResponse",
    "RepositoryListResponse",
    "RepositoryDetailResponse",
    "CommitListResponse",
    "CommitSummaryResponse",
    "AskRequest",
    "AskResponse",
    "QueryListResponse",
    "IngestMeetingRequest",
    "MeetingResponse",
    "MeetingListResponse",
    "MeetingDetailResponse",
]
