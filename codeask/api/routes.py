from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from codeask.api.deps import get_container
from codeask.container import AppContainer
from codeask.errors import NotFoundError
from codeask.models.entities import Repository, RepositoryStatus
from codeask.models.schemas import (
    AskRequest,
    AskResponse,
    CommitListResponse,
    CommitSummaryResponse,
    CreateRepositoryRequest,
    QueryListResponse,
    RepositoryDetailResponse,
    RepositoryListResponse,
    RepositoryResponse,
)
from codeask.rag.events import encode_sse
from codeask.rag.pipeline import ensure_answerable

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache, no-transform", "X-Accel-Buffering": "no"}


@router.post(
    "/repositories",
    response_model=RepositoryResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Register a repository and start ingestion",
)
async def create_repository(
    body: CreateRepositoryRequest,
    container: AppContainer = Depends(get_container),
) -> RepositoryResponse:
    info = await container.fetcher.resolve(body.url)
    repository = await container.storage.create_repository(
        Repository(
            name=body.name or info.name,
            full_name=info.full_name,
            url=body.url,
            description=body.description or info.description,
            language=body.language or info.language,
            status=RepositoryStatus.PENDING,
        )
    )
    container.tasks.schedule(repository.id)
    logger.info("Repository registered", extra={"repository_id": repository.id, "full_name": repository.full_name})
    return RepositoryResponse(repository=repository)


@router.get("/repositories", response_model=RepositoryListResponse)
async def list_repositories(container: AppContainer = Depends(get_container)) -> RepositoryListResponse:
    return RepositoryListResponse(repositories=await container.storage.list_repositories())


@router.get("/repositories/{repository_id}", response_model=RepositoryDetailResponse)
async def get_repository(
    repository_id: str,
    container: AppContainer = Depends(get_container),
) -> RepositoryDetailResponse:
    repository = await container.storage.require_repository(repository_id)
    return RepositoryDetailResponse(
        repository=repository,
        files=await container.storage.get_repository_files(repository_id),
        commits=await container.storage.get_repository_commits(repository_id),
    )


@router.delete("/repositories/{repository_id}")
async def delete_repository(
    repository_id: str,
    container: AppContainer = Depends(get_container),
) -> dict:
    await container.storage.require_repository(repository_id)
    await container.tasks.cancel(repository_id)
    await container.storage.delete_repository(repository_id)
    container.index.clear_repository(repository_id)
    return {"success": True}


@router.post(
    "/repositories/{repository_id}/reindex",
    response_model=RepositoryResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Re-run ingestion for a repository",
)
async def reindex_repository(
    repository_id: str,
    container: AppContainer = Depends(get_container),
) -> RepositoryResponse:
    repository = await container.storage.require_repository(repository_id)
    container.tasks.schedule(repository_id)
    return RepositoryResponse(repository=repository)


@router.post("/repositories/{repository_id}/query", response_model=AskResponse, summary="Ask a question")
async def ask(
    repository_id: str,
    request: AskRequest,
    container: AppContainer = Depends(get_container),
) -> AskResponse:
    repository = await container.storage.require_repository(repository_id)
    logger.info("Ask request", extra={"repository_id": repository_id, "len": len(request.question)})
    record, answer = await container.qa.answer(repository, request.question)
    return AskResponse(query=record, response=answer)


@router.get("/repositories/{repository_id}/query/stream", summary="Ask a question and stream the answer")
async def ask_stream(
    repository_id: str,
    q: str | None = Query(default=None, description="Question"),
    container: AppContainer = Depends(get_container),
) -> StreamingResponse:
    repository = await container.storage.require_repository(repository_id)
    # rejected here, before any stream bytes are sent
    question = ensure_answerable(repository, q)
    coordinator = container.qa.stream_coordinator()

    async def frames() -> AsyncIterator[str]:
        events = coordinator.stream(question, repository)
        try:
            async for event in events:
                yield encode_sse(event)
        finally:
            await events.aclose()

    container.metrics.inc("questions.streamed")
    logger.info("Streaming answer", extra={"repository_id": repository_id, "len": len(question)})
    return StreamingResponse(frames(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/repositories/{repository_id}/queries", response_model=QueryListResponse)
async def list_repository_queries(
    repository_id: str,
    container: AppContainer = Depends(get_container),
) -> QueryListResponse:
    await container.storage.require_repository(repository_id)
    return QueryListResponse(queries=await container.storage.get_queries(repository_id))


@router.get("/queries", response_model=QueryListResponse)
async def list_queries(container: AppContainer = Depends(get_container)) -> QueryListResponse:
    return QueryListResponse(queries=await container.storage.get_queries())


@router.get("/repositories/{repository_id}/commits", response_model=CommitListResponse)
async def list_commits(
    repository_id: str,
    container: AppContainer = Depends(get_container),
) -> CommitListResponse:
    await container.storage.require_repository(repository_id)
    return CommitListResponse(commits=await container.storage.get_repository_commits(repository_id))


@router.post("/commits/{commit_id}/summary", response_model=CommitSummaryResponse)
async def summarize_commit(
    commit_id: str,
    force: bool = False,
    container: AppContainer = Depends(get_container),
) -> CommitSummaryResponse:
    commit = await container.storage.get_commit(commit_id)
    if commit is None:
        raise NotFoundError(f"Commit not found: {commit_id}", {"commit_id": commit_id})
    if commit.ai_summary and not force:
        return CommitSummaryResponse(commit=commit, cached=True)

    result = await container.provider.summarize_commit(commit)
    updated = await container.storage.update_commit(commit_id, ai_summary=result.summary)
    return CommitSummaryResponse(commit=updated, cached=False)


__all__ = ["router"]
