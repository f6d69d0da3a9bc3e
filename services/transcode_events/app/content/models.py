import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum as SAEnum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import PostStatus


class Post(Base):
    __tablename__ = "posts"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Soft reference: User lives in identity_db, FK not enforceable cross-DB
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    title: Mapped[str | None] = mapped_column(String(300), nullable=True)
    # Set by the upload flow when it submits the MediaConvert job
    transcode_job_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )
    processed_video_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("processed_videos.video_id", ondelete="SET NULL"),
        nullable=True,
    )
    # [{url, type}]
    media_urls: Mapped[list[dict] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[PostStatus] = mapped_column(
        SAEnum(PostStatus, name="post_status", create_constraint=True),
        nullable=False,
        default=PostStatus.PROCESSING,
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    processed_video = relationship("ProcessedVideo", lazy="noload")

    __table_args__ = (
        Index("ix_posts_author_id", "author_id"),
        Index("ix_posts_status", "status"),
    )
