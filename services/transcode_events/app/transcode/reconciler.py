"""
Transcode events: reconciliation of a validated event against stored state.

Zero FastAPI imports. Receives the store via parameters; the caller decides
the transaction boundary and commits the unit of work.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from app.transcode.constants import JobStatus, Outcome, VideoStatus
from app.transcode.guard import Delivery, check_delivery
from app.transcode.store import TranscodeStore
from app.transcode.validator import TranscodeEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    job_id: str
    outcome: Outcome
    video_status: VideoStatus | None = None
    created: bool = False
    post_found: bool = False
    post_updated: bool = False
    post_published: bool = False
    post_id: uuid.UUID | None = None

    @property
    def is_reportable(self) -> bool:
        return self.outcome in (Outcome.CREATED, Outcome.UPDATED, Outcome.ORPHAN)


async def reconcile(store: TranscodeStore, event: TranscodeEvent) -> ReconcileResult:
    """Apply one event to the stored ProcessedVideo and its post.

    Raises ``WriteConflict`` when a concurrent delivery committed first; the
    caller rolls back and retries, at which point the guard reports a duplicate.
    """
    if not event.is_actionable:
        logger.info(
            "Job %s: status %s not handled, acknowledging without changes",
            event.job_id, event.raw_status,
        )
        return ReconcileResult(job_id=event.job_id, outcome=Outcome.IGNORED)

    existing = await store.get_video(event.job_id)
    delivery = check_delivery(existing)
    if delivery is Delivery.DUPLICATE:
        logger.info(
            "Job %s already %s, ignoring %s redelivery",
            event.job_id, existing.status.value, event.raw_status,
        )
        return ReconcileResult(
            job_id=event.job_id,
            outcome=Outcome.DUPLICATE,
            video_status=existing.status,
        )

    target = VideoStatus.COMPLETE if event.status is JobStatus.COMPLETE else VideoStatus.FAILED
    fields = _video_fields(event, target)
    if delivery is Delivery.CREATE:
        video = await store.add_video(event.job_id, target, **fields)
    else:
        video = await store.transition_video(event.job_id, target, **fields)
    created = delivery is Delivery.CREATE
    outcome = Outcome.CREATED if created else Outcome.UPDATED

    if target is VideoStatus.FAILED:
        logger.warning(
            "Job %s failed (code=%s): %s",
            event.job_id, event.error_code, event.error_message,
        )
        return ReconcileResult(
            job_id=event.job_id,
            outcome=outcome,
            video_status=target,
            created=created,
        )

    post = await store.find_post(event.job_id, event.post_id)
    if post is None:
        logger.warning("Job %s completed but no post references it", event.job_id)
        return ReconcileResult(
            job_id=event.job_id,
            outcome=Outcome.ORPHAN,
            video_status=target,
            created=created,
        )

    published = await store.publish_post(post, video)
    logger.info(
        "Job %s completed, post %s updated (published=%s)",
        event.job_id, post.post_id, published,
    )
    return ReconcileResult(
        job_id=event.job_id,
        outcome=outcome,
        video_status=target,
        created=created,
        post_found=True,
        post_updated=True,
        post_published=published,
        post_id=post.post_id,
    )


def _video_fields(event: TranscodeEvent, target: VideoStatus) -> dict[str, Any]:
    if target is VideoStatus.FAILED:
        return {
            "queue": event.queue,
            "error_code": event.error_code,
            "error_message": event.error_message or "Unknown transcoding error",
        }
    return {
        "queue": event.queue,
        "output_paths": list(event.output_paths),
        "hls_url": event.outputs.hls_url,
        "mp4_url": event.outputs.mp4_url,
        "thumbnail_url": event.outputs.thumbnail_url,
        "duration_secs": event.duration_secs,
        "resolution": event.resolution,
        "completed_at": event.timestamp or datetime.now(timezone.utc),
    }
