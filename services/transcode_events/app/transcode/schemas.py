"""
Transcode events: Pydantic V2 schemas.

Inbound: the EventBridge "MediaConvert Job State Change" envelope. Only the
fields this service reads are declared; everything else AWS sends is ignored.
Only ``jobId``, ``status`` and ``outputFilePaths`` can fail validation; an
unparseable enrichment field is logged and read as absent.
Outbound: the acknowledgement body and the status read model.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    WrapValidator,
)

from app.transcode.constants import Outcome, VideoStatus

logger = logging.getLogger(__name__)

# Matches ProcessedVideo.job_id / Post.transcode_job_id
JOB_ID_MAX_LENGTH = 100


def _none_if_invalid(
    value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
) -> Any:
    try:
        return handler(value)
    except ValidationError:
        logger.warning("Ignoring unparseable event field %s=%r", info.field_name, value)
        return None


OptionalInt = Annotated[int | None, WrapValidator(_none_if_invalid)]
OptionalFloat = Annotated[float | None, WrapValidator(_none_if_invalid)]
OptionalStr = Annotated[str | None, WrapValidator(_none_if_invalid)]
OptionalDatetime = Annotated[datetime | None, WrapValidator(_none_if_invalid)]


# ── Base ─────────────────────────────────────────────────────────────────────

class _Inbound(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="ignore",
        populate_by_name=True,
    )


class _Outbound(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── EventBridge envelope ─────────────────────────────────────────────────────

class VideoDetails(_Inbound):
    width_in_px: OptionalInt = Field(default=None, alias="widthInPx")
    height_in_px: OptionalInt = Field(default=None, alias="heightInPx")


class OutputDetail(_Inbound):
    output_file_paths: list[str] = Field(default_factory=list, alias="outputFilePaths")
    duration_in_ms: OptionalFloat = Field(default=None, alias="durationInMs")
    video_details: Annotated[VideoDetails | None, WrapValidator(_none_if_invalid)] = Field(
        default=None, alias="videoDetails",
    )


class OutputGroupDetail(_Inbound):
    type: OptionalStr = None
    output_details: list[OutputDetail] = Field(default_factory=list, alias="outputDetails")


class JobStateDetail(_Inbound):
    job_id: str = Field(min_length=1, max_length=JOB_ID_MAX_LENGTH, alias="jobId")
    status: str = Field(min_length=1)
    queue: OptionalStr = None
    timestamp: OptionalDatetime = None
    error_code: OptionalInt = Field(default=None, alias="errorCode")
    error_message: OptionalStr = Field(default=None, alias="errorMessage")
    # MediaConvert sends a string map, but nothing upstream enforces it
    user_metadata: Annotated[dict[str, Any] | None, WrapValidator(_none_if_invalid)] = Field(
        default=None, alias="userMetadata",
    )
    output_group_details: list[OutputGroupDetail] = Field(
        default_factory=list, alias="outputGroupDetails",
    )


class JobStateChangeEnvelope(_Inbound):
    source: OptionalStr = None
    detail_type: OptionalStr = Field(default=None, alias="detail-type")
    time: OptionalDatetime = None
    detail: JobStateDetail


# ── Responses ────────────────────────────────────────────────────────────────

class AckResponse(_Outbound):
    """Returned to the webhook sender for every accepted delivery."""
    status: str = "ok"
    result: Outcome


class ProcessedVideoResponse(_Outbound):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    video_id: uuid.UUID
    job_id: str
    status: VideoStatus
    queue: str | None = None
    output_paths: list[str]
    hls_url: str | None = None
    mp4_url: str | None = None
    thumbnail_url: str | None = None
    duration_secs: int | None = None
    resolution: str | None = None
    error_code: int | None = None
    error_message: str | None = None
    completed_at: datetime | None = None
    created_at: datetime
