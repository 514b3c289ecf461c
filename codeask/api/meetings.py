from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from codeask.api.deps import get_container
from codeask.container import AppContainer
from codeask.errors import NotFoundError
from codeask.models.schemas import (
    IngestMeetingRequest,
    MeetingDetailResponse,
    MeetingListResponse,
    MeetingResponse,
)

router = APIRouter(prefix="/api/meetings", tags=["meetings"])
logger = logging.getLogger(__name__)


@router.get("", response_model=MeetingListResponse)
async def list_meetings(container: AppContainer = Depends(get_container)) -> MeetingListResponse:
    return MeetingListResponse(meetings=await container.storage.list_meetings())


@router.get("/{meeting_id}", response_model=MeetingDetailResponse)
async def get_meeting(meeting_id: str, container: AppContainer = Depends(get_container)) -> MeetingDetailResponse:
    meeting = await container.storage.get_meeting(meeting_id)
    if meeting is None:
        raise NotFoundError(f"Meeting not found: {meeting_id}", {"meeting_id": meeting_id})
    return MeetingDetailResponse(meeting=meeting, segments=await container.storage.get_meeting_segments(meeting_id))


@router.post("", response_model=MeetingResponse, status_code=status.HTTP_202_ACCEPTED)
async def ingest_meeting(
    body: IngestMeetingRequest,
    container: AppContainer = Depends(get_container),
) -> MeetingResponse:
    meeting = await container.transcripts.ingest(body.transcript, title=body.title, source=body.source)
    logger.info("Meeting ingested", extra={"meeting_id": meeting.id})
    return MeetingResponse(meeting=meeting)


@router.post("/{meeting_id}/summarize", response_model=MeetingResponse)
async def summarize_meeting(meeting_id: str, container: AppContainer = Depends(get_container)) -> MeetingResponse:
    return MeetingResponse(meeting=await container.transcripts.summarize(meeting_id))


__all__ = ["router"]
