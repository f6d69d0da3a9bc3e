"""
Webhook listener: HTTP routes.

The EventBridge API destination posts MediaConvert job state changes here.
Sender authentication is a dependency (see ``app.listener.auth``).
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.database import get_db, get_session_factory
from app.listener import controller
from app.listener.dependencies import (
    authenticated_body,
    get_dispatcher,
    get_job_locks,
    get_settings,
)
from app.notify.dispatcher import NotificationDispatcher
from app.rate_limit import limiter, webhook_rate_limit
from app.transcode.guard import JobLocks
from app.transcode.schemas import AckResponse, ProcessedVideoResponse

router = APIRouter(prefix="/aws/listener", tags=["listener"])


@router.post(
    "/eventbridge/video",
    response_model=AckResponse,
    summary="Receive a MediaConvert job state change",
    description=(
        "Validates the EventBridge event, ignores redeliveries for jobs that "
        "already reached a terminal state, marks the processed video complete "
        "or failed, and publishes the owning post. Returns the outcome: "
        "created, updated, duplicate, orphan or ignored."
    ),
)
@limiter.limit(webhook_rate_limit)
async def receive_video_event(
    request: Request,
    body: bytes = Depends(authenticated_body),
    settings: Settings = Depends(get_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    job_locks: JobLocks = Depends(get_job_locks),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> AckResponse:
    return await controller.ingest_event(
        body,
        settings=settings,
        session_factory=session_factory,
        job_locks=job_locks,
        dispatcher=dispatcher,
    )


@router.get(
    "/videos/{job_id}",
    response_model=ProcessedVideoResponse,
    summary="Get processed video status for a job",
)
async def get_video_status(
    job_id: str,
    db: AsyncSession = Depends(get_db),
) -> ProcessedVideoResponse:
    return await controller.get_video_status(job_id, db)
