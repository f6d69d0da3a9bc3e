"""
Webhook listener: controller layer.

Receives the authenticated raw body from the router, runs validation and
reconciliation, schedules the notification, and composes the response.
Thin glue between HTTP and the transcode domain.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import (
    InconsistentEvent,
    MalformedPayload,
    StorageFailure,
    VideoNotFound,
    WriteConflict,
)
from app.transcode.reconciler import ReconcileResult, reconcile
from app.transcode.schemas import AckResponse, ProcessedVideoResponse
from app.transcode.store import SqlTranscodeStore
from app.transcode.validator import TranscodeEvent, parse_transcode_event
from shared.database.postgres import unit_of_work

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from app.config import Settings
    from app.notify.dispatcher import NotificationDispatcher
    from app.transcode.guard import JobLocks

logger = logging.getLogger(__name__)


async def ingest_event(
    body: bytes,
    *,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    job_locks: JobLocks,
    dispatcher: NotificationDispatcher,
) -> AckResponse:
    """Validate, reconcile and acknowledge one MediaConvert state-change delivery."""
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Rejected webhook: body is not JSON (%s)", exc)
        raise MalformedPayload("Request body is not valid JSON.") from exc

    try:
        event = parse_transcode_event(payload, allowed_queues=settings.allowed_queues)
    except (MalformedPayload, InconsistentEvent) as exc:
        logger.warning("Rejected webhook (%s): %s", exc.reason, exc.detail)
        raise

    # Shielded: once reconciliation starts, a dropped sender connection must
    # not interrupt it between the store writes and the commit.
    result = await asyncio.shield(
        _reconcile_serialised(
            event,
            session_factory=session_factory,
            job_locks=job_locks,
            max_attempts=settings.listener_reconcile_max_attempts,
        )
    )

    dispatcher.dispatch(result, event)
    return AckResponse(result=result.outcome)


async def _reconcile_serialised(
    event: TranscodeEvent,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    job_locks: JobLocks,
    max_attempts: int,
) -> ReconcileResult:
    async with job_locks.hold(event.job_id):
        for attempt in range(1, max_attempts + 1):
            try:
                async with unit_of_work(session_factory) as session:
                    return await reconcile(SqlTranscodeStore(session), event)
            except WriteConflict:
                logger.info(
                    "Job %s: concurrent terminal write, retrying (attempt %d/%d)",
                    event.job_id, attempt, max_attempts,
                )
            except SQLAlchemyError as exc:
                logger.exception("Storage failure reconciling job %s", event.job_id)
                raise StorageFailure() from exc

    logger.error("Job %s: write conflicts exhausted after %d attempts", event.job_id, max_attempts)
    raise StorageFailure()


async def get_video_status(job_id: str, db: AsyncSession) -> ProcessedVideoResponse:
    video = await SqlTranscodeStore(db).get_video(job_id)
    if video is None:
        raise VideoNotFound()
    return ProcessedVideoResponse.model_validate(video)
