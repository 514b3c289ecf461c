"""
In-memory entity storage. CRUD only; kept behind async methods so a database-backed
implementation can replace it without touching callers.
"""

from __future__ import annotations

from typing import Any, Dict, List

from codeask.errors import NotFoundError, RepositoryNotFoundError
from codeask.models.entities import (
    Commit,
    Meeting,
    MeetingSegment,
    QueryRecord,
    Repository,
    RepositoryFile,
)


class InMemoryStorage:
    def __init__(self) -> None:
        self._repositories: Dict[str, Repository] = {}
        self._files: Dict[str, RepositoryFile] = {}
        self._commits: Dict[str, Commit] = {}
        self._queries: Dict[str, QueryRecord] = {}
        self._meetings: Dict[str, Meeting] = {}
        self._segments: Dict[str, MeetingSegment] = {}

    # --- Repositories ---
    async def create_repository(self, repository: Repository) -> Repository:
        self._repositories[repository.id] = repository
        return repository

    async def get_repository(self, repository_id: str) -> Repository | None:
        return self._repositories.get(repository_id)

    async def require_repository(self, repository_id: str) -> Repository:
        repository = self._repositories.get(repository_id)
        if repository is None:
            raise RepositoryNotFoundError(repository_id)
        return repository

    async def list_repositories(self) -> List[Repository]:
        return sorted(self._repositories.values(), key=lambda r: r.created_at, reverse=True)

    async def update_repository(self, repository_id: str, **changes: Any) -> Repository:
        current = await self.require_repository(repository_id)
        updated = current.model_copy(update=changes)
        self._repositories[repository_id] = updated
        return updated

    async def delete_repository(self, repository_id: str) -> None:
        self._repositories.pop(repository_id, None)
        await self.delete_repository_files(repository_id)
        await self.delete_repository_commits(repository_id)
        for query_id in [q.id for q in self._queries.values() if q.repository_id == repository_id]:
            del self._queries[query_id]

    # --- Repository files ---
    async def create_repository_file(self, file: RepositoryFile) -> RepositoryFile:
        self._files[file.id] = file
        return file

    async def get_repository_files(self, repository_id: str) -> List[RepositoryFile]:
        return [f for f in self._files.values() if f.repository_id == repository_id]

    async def delete_repository_files(self, repository_id: str) -> int:
        doomed = [f.id for f in self._files.values() if f.repository_id == repository_id]
        for file_id in doomed:
            del self._files[file_id]
        return len(doomed)

    # --- Commits ---
    async def create_commit(self, commit: Commit) -> Commit:
        self._commits[commit.id] = commit
        return commit

    async def get_commit(self, commit_id: str) -> Commit | None:
        return self._commits.get(commit_id)

    async def get_repository_commits(self, repository_id: str) -> List[Commit]:
        commits = [c for c in self._commits.values() if c.repository_id == repository_id]
        return sorted(commits, key=lambda c: (c.date is not None, c.date), reverse=True)

    async def update_commit(self, commit_id: str, **changes: Any) -> Commit:
        current = self._commits.get(commit_id)
        if current is None:
            raise NotFoundError(f"Commit not found: {commit_id}", {"commit_id": commit_id})
        updated = current.model_copy(update=changes)
        self._commits[commit_id] = updated
        return updated

    async def delete_repository_commits(self, repository_id: str) -> int:
        doomed = [c.id for c in self._commits.values() if c.repository_id == repository_id]
        for commit_id in doomed:
            del self._commits[commit_id]
        return len(doomed)

    # --- Queries ---
    async def create_query(self, query: QueryRecord) -> QueryRecord:
        self._queries[query.id] = query
        return query

    async def get_queries(self, repository_id: str | None = None) -> List[QueryRecord]:
        queries = [q for q in self._queries.values() if repository_id is None or q.repository_id == repository_id]
        return sorted(queries, key=lambda q: q.created_at, reverse=True)

    # --- Meetings ---
    async def create_meeting(self, meeting: Meeting) -> Meeting:
        self._meetings[meeting.id] = meeting
        return meeting

    async def get_meeting(self, meeting_id: str) -> Meeting | None:
        return self._meetings.get(meeting_id)

    async def list_meetings(self) -> List[Meeting]:
        return sorted(self._meetings.values(), key=lambda m: m.created_at, reverse=True)

    async def update_meeting(self, meeting_id: str, **changes: Any) -> Meeting:
        current = self._meetings.get(meeting_id)
        if current is None:
            raise NotFoundError(f"Meeting not found: {meeting_id}", {"meeting_id": meeting_id})
        updated = current.model_copy(update=changes)
        self._meetings[meeting_id] = updated
        return updated

    async def create_meeting_segment(self, segment: MeetingSegment) -> MeetingSegment:
        self._segments[segment.id] = segment
        return segment

    async def get_meeting_segments(self, meeting_id: str) -> List[MeetingSegment]:
        segments = [s for s in self._segments.values() if s.meeting_id == meeting_id]
        return sorted(segments, key=lambda s: s.order)


__all__ = ["InMemoryStorage"]
