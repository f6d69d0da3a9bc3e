"""
Transcode events: durable store.

``TranscodeStore`` is the only surface the reconciler writes through.
``SqlTranscodeStore`` implements it on one SQLAlchemy session; the caller
owns the session's transaction boundary.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.content.enums import PostStatus
from app.content.models import Post
from app.exceptions import WriteConflict
from app.transcode.constants import VideoStatus
from app.transcode.models import ProcessedVideo


class TranscodeStore(Protocol):
    async def get_video(self, job_id: str) -> ProcessedVideo | None: ...

    async def add_video(self, job_id: str, status: VideoStatus, **fields: Any) -> ProcessedVideo: ...

    async def transition_video(
        self, job_id: str, status: VideoStatus, **fields: Any
    ) -> ProcessedVideo: ...

    async def find_post(self, job_id: str, post_id: uuid.UUID | None = None) -> Post | None: ...

    async def publish_post(self, post: Post, video: ProcessedVideo) -> bool: ...


class SqlTranscodeStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_video(self, job_id: str) -> ProcessedVideo | None:
        result = await self._session.execute(
            select(ProcessedVideo).where(ProcessedVideo.job_id == job_id)
        )
        return result.scalar_one_or_none()

    async def add_video(self, job_id: str, status: VideoStatus, **fields: Any) -> ProcessedVideo:
        """Insert a record for a job seen for the first time.

        Raises ``WriteConflict`` when another delivery inserted the job first.
        """
        video = ProcessedVideo(job_id=job_id, status=status, **fields)
        self._session.add(video)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise WriteConflict(job_id) from exc
        return video

    async def transition_video(
        self, job_id: str, status: VideoStatus, **fields: Any
    ) -> ProcessedVideo:
        """Move a PENDING record to ``status``; compare-and-set on the stored status.

        Raises ``WriteConflict`` when the record is no longer PENDING.
        """
        result = await self._session.execute(
            update(ProcessedVideo)
            .where(
                ProcessedVideo.job_id == job_id,
                ProcessedVideo.status == VideoStatus.PENDING,
            )
            .values(status=status, updated_at=datetime.now(timezone.utc), **fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise WriteConflict(job_id)

        refreshed = await self._session.execute(
            select(ProcessedVideo)
            .where(ProcessedVideo.job_id == job_id)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()

    async def find_post(self, job_id: str, post_id: uuid.UUID | None = None) -> Post | None:
        """Resolve the owning post: embedded reference first, then the job relation."""
        if post_id is not None:
            post = await self._session.get(Post, post_id)
            if post is not None:
                return post
        result = await self._session.execute(
            select(Post).where(Post.transcode_job_id == job_id)
        )
        return result.scalar_one_or_none()

    async def publish_post(self, post: Post, video: ProcessedVideo) -> bool:
        """Attach a completed video to its post. Returns True if the post went live."""
        post.processed_video_id = video.video_id
        post.media_urls = _media_urls(video)
        went_live = post.status == PostStatus.PROCESSING
        if went_live:
            post.status = PostStatus.PUBLISHED
            post.published_at = datetime.now(timezone.utc)
        await self._session.flush()
        return went_live


def _media_urls(video: ProcessedVideo) -> list[dict]:
    urls = []
    if video.hls_url:
        urls.append({"url": video.hls_url, "type": "hls"})
    if video.mp4_url:
        urls.append({"url": video.mp4_url, "type": "mp4"})
    if video.thumbnail_url:
        urls.append({"url": video.thumbnail_url, "type": "thumbnail"})
    if not urls:
        urls = [{"url": path, "type": "file"} for path in video.output_paths]
    return urls
