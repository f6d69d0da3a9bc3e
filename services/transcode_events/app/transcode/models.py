"""
ProcessedVideo ORM model: SQLAlchemy 2.0 async.

One row per MediaConvert job. Tracks the terminal state reached for the job
and the output locations it reported; the transcoded files live in S3.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base
from app.transcode.constants import VideoStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessedVideo(Base):
    __tablename__ = "processed_videos"

    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Inbound schema rejects longer ids (JOB_ID_MAX_LENGTH)
    job_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    queue: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[VideoStatus] = mapped_column(
        SAEnum(VideoStatus, name="videostatus", create_constraint=True),
        nullable=False,
        default=VideoStatus.PENDING,
    )

    # Every path MediaConvert reported, in delivery order
    output_paths: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # S3 keys nest arbitrarily deep, so locations are unbounded text
    hls_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    mp4_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_secs: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resolution: Mapped[str | None] = mapped_column(String(20), nullable=True)

    error_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_processed_videos_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ProcessedVideo {self.job_id} status={self.status}>"
