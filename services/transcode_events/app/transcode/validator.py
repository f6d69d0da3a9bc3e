"""
Transcode events: inbound payload validation.

Turns a decoded EventBridge body into a ``TranscodeEvent`` or raises the
rejection the sender should see. Pure: no I/O, no database access.
"""
from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from app.exceptions import InconsistentEvent, MalformedPayload
from app.transcode.constants import (
    HLS_MANIFEST_NAME,
    MEDIACONVERT_SOURCE,
    MP4_EXTENSIONS,
    POST_REFERENCE_KEY,
    RESOLUTION_LABELS,
    THUMBNAIL_EXTENSIONS,
    JobStatus,
)
from app.transcode.schemas import JobStateChangeEnvelope, JobStateDetail

logger = logging.getLogger(__name__)

INT4_MIN, INT4_MAX = -(2**31), 2**31 - 1


@dataclass(frozen=True, slots=True)
class OutputLocations:
    hls_url: str | None = None
    mp4_url: str | None = None
    thumbnail_url: str | None = None


@dataclass(frozen=True, slots=True)
class TranscodeEvent:
    job_id: str
    status: JobStatus
    raw_status: str
    output_paths: tuple[str, ...] = ()
    queue: str | None = None
    timestamp: datetime | None = None
    error_code: int | None = None
    error_message: str | None = None
    post_id: uuid.UUID | None = None
    duration_secs: int | None = None
    resolution: str | None = None
    outputs: OutputLocations = field(default_factory=OutputLocations)
    # False when the event is well-formed but not addressed to this service
    relevant: bool = True

    @property
    def is_actionable(self) -> bool:
        return self.relevant and self.status is not JobStatus.OTHER


def parse_transcode_event(
    body: Any,
    *,
    allowed_queues: Collection[str] = (),
) -> TranscodeEvent:
    """Validate a decoded request body.

    Raises ``MalformedPayload`` when ``detail.jobId`` or ``detail.status`` is
    missing (or the job id is longer than the stored column) and ``InconsistentEvent`` when a COMPLETE job reports no outputs.
    Unrecognised statuses are returned as ``JobStatus.OTHER``.
    """
    if not isinstance(body, dict):
        raise MalformedPayload("Event payload must be a JSON object.")
    try:
        envelope = JobStateChangeEnvelope.model_validate(body)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise MalformedPayload(f"Invalid event fields: {', '.join(fields)}.") from exc

    detail = envelope.detail
    status = _job_status(detail.status)
    output_paths = tuple(
        path
        for group in detail.output_group_details
        for output in group.output_details
        for path in output.output_file_paths
        if path
    )

    relevant = _is_relevant(envelope, allowed_queues)
    if not relevant:
        logger.info(
            "Ignoring job %s from source=%s queue=%s",
            detail.job_id, envelope.source, detail.queue,
        )
    elif status is JobStatus.COMPLETE and not output_paths:
        raise InconsistentEvent()

    return TranscodeEvent(
        job_id=detail.job_id,
        status=status,
        raw_status=detail.status,
        output_paths=output_paths,
        queue=detail.queue,
        timestamp=detail.timestamp or envelope.time,
        error_code=_int4(detail.error_code, "errorCode", detail.job_id),
        error_message=detail.error_message,
        post_id=_post_reference(detail),
        duration_secs=_duration_secs(detail),
        resolution=_resolution(detail),
        outputs=classify_outputs(output_paths),
        relevant=relevant,
    )


def classify_outputs(paths: Collection[str]) -> OutputLocations:
    """Pick the HLS master manifest, MP4 rendition and thumbnail out of the reported paths."""
    hls_url = mp4_url = thumbnail_url = None
    for path in paths:
        lower = path.lower()
        if lower.endswith(".m3u8") and hls_url is None:
            # Variant playlists sit next to the master manifest
            hls_url = path.rsplit("/", 1)[0] + "/" + HLS_MANIFEST_NAME
        elif lower.endswith(MP4_EXTENSIONS) and mp4_url is None:
            mp4_url = path
        elif lower.endswith(THUMBNAIL_EXTENSIONS) and thumbnail_url is None:
            thumbnail_url = path
    return OutputLocations(hls_url=hls_url, mp4_url=mp4_url, thumbnail_url=thumbnail_url)


def _job_status(raw: str) -> JobStatus:
    try:
        status = JobStatus(raw.upper())
    except ValueError:
        return JobStatus.OTHER
    return status


def _is_relevant(envelope: JobStateChangeEnvelope, allowed_queues: Collection[str]) -> bool:
    if envelope.source is not None and envelope.source != MEDIACONVERT_SOURCE:
        return False
    if not allowed_queues:
        return True
    queue = envelope.detail.queue or ""
    # Accept either the full ARN or the trailing queue name
    return queue in allowed_queues or queue.rsplit("/", 1)[-1] in allowed_queues


def _post_reference(detail: JobStateDetail) -> uuid.UUID | None:
    raw = (detail.user_metadata or {}).get(POST_REFERENCE_KEY)
    if raw is None or raw == "":
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        logger.warning("Job %s carries an unparseable post reference %r", detail.job_id, raw)
        return None


def _duration_secs(detail: JobStateDetail) -> int | None:
    for group in detail.output_group_details:
        for output in group.output_details:
            if output.duration_in_ms and math.isfinite(output.duration_in_ms):
                return _int4(int(output.duration_in_ms / 1000), "durationInMs", detail.job_id)
    return None


def _int4(value: int | None, name: str, job_id: str) -> int | None:
    """Drop integers the INTEGER columns cannot hold."""
    if value is None or INT4_MIN <= value <= INT4_MAX:
        return value
    logger.warning("Job %s: %s=%d out of range, ignoring", job_id, name, value)
    return None


def _resolution(detail: JobStateDetail) -> str | None:
    """Label of the tallest rendition reported."""
    heights = [
        output.video_details.height_in_px
        for group in detail.output_group_details
        for output in group.output_details
        if output.video_details and (output.video_details.height_in_px or 0) > 0
    ]
    if not heights:
        return None
    tallest = max(heights)
    for threshold, label in RESOLUTION_LABELS:
        if tallest >= threshold:
            return label
    return f"{tallest}p"
