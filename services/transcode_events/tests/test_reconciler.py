import pytest
from sqlalchemy import select

from app.content.enums import PostStatus
from app.content.models import Post
from app.transcode.constants import Outcome, VideoStatus
from app.transcode.reconciler import reconcile
from app.transcode.store import SqlTranscodeStore
from app.transcode.validator import parse_transcode_event

JOB_ID = "1700000000000-abc123"


async def _reconcile(session_factory, body):
    async with session_factory() as session:
        result = await reconcile(SqlTranscodeStore(session), parse_transcode_event(body))
        await session.commit()
    return result


async def _load(session_factory, job_id: str = JOB_ID):
    async with session_factory() as session:
        video = await SqlTranscodeStore(session).get_video(job_id)
        post = (
            await session.execute(select(Post).where(Post.transcode_job_id == job_id))
        ).scalar_one_or_none()
    return video, post


@pytest.mark.asyncio
async def test_complete_creates_video_and_publishes_post(session_factory, make_event, make_post) -> None:
    await make_post()
    result = await _reconcile(session_factory, make_event())

    assert result.outcome is Outcome.CREATED
    assert result.created and result.post_found and result.post_published
    video, post = await _load(session_factory)
    assert video.status is VideoStatus.COMPLETE
    assert video.hls_url.endswith("/hls/master.m3u8")
    assert video.duration_secs == 61
    assert video.completed_at is not None
    assert post.status is PostStatus.PUBLISHED
    assert post.processed_video_id == video.video_id
    assert {item["type"] for item in post.media_urls} == {"hls", "mp4", "thumbnail"}


@pytest.mark.asyncio
async def test_pending_record_is_updated(session_factory, make_event, make_post) -> None:
    async with session_factory() as session:
        await SqlTranscodeStore(session).add_video(JOB_ID, VideoStatus.PENDING)
        await session.commit()
    await make_post()

    result = await _reconcile(session_factory, make_event())

    assert result.outcome is Outcome.UPDATED
    assert not result.created
    video, post = await _load(session_factory)
    assert video.status is VideoStatus.COMPLETE
    assert post.status is PostStatus.PUBLISHED


@pytest.mark.asyncio
async def test_complete_without_post_is_orphan(session_factory, make_event) -> None:
    result = await _reconcile(session_factory, make_event())

    assert result.outcome is Outcome.ORPHAN
    assert result.is_reportable
    video, post = await _load(session_factory)
    assert video.status is VideoStatus.COMPLETE
    assert post is None


@pytest.mark.asyncio
async def test_error_marks_video_failed_and_leaves_post(session_factory, make_event, make_post) -> None:
    await make_post()
    result = await _reconcile(
        session_factory, make_event(status="ERROR", errorCode=1030, errorMessage="Bad input"),
    )

    assert result.outcome is Outcome.CREATED
    assert result.video_status is VideoStatus.FAILED
    assert not result.post_updated
    video, post = await _load(session_factory)
    assert video.status is VideoStatus.FAILED
    assert video.error_code == 1030
    assert video.error_message == "Bad input"
    assert post.status is PostStatus.PROCESSING
    assert post.processed_video_id is None


@pytest.mark.asyncio
async def test_error_without_message_gets_default(session_factory, make_event) -> None:
    await _reconcile(session_factory, make_event(status="ERROR"))
    video, _ = await _load(session_factory)
    assert video.error_message == "Unknown transcoding error"


@pytest.mark.asyncio
async def test_redelivery_is_duplicate(session_factory, make_event, make_post) -> None:
    await make_post()
    await _reconcile(session_factory, make_event())
    result = await _reconcile(session_factory, make_event())

    assert result.outcome is Outcome.DUPLICATE
    assert not result.is_reportable


@pytest.mark.asyncio
async def test_error_after_complete_does_not_regress(session_factory, make_event, make_post) -> None:
    await make_post()
    await _reconcile(session_factory, make_event())
    result = await _reconcile(session_factory, make_event(status="ERROR", errorMessage="late"))

    assert result.outcome is Outcome.DUPLICATE
    assert result.video_status is VideoStatus.COMPLETE
    video, post = await _load(session_factory)
    assert video.status is VideoStatus.COMPLETE
    assert video.error_message is None
    assert post.status is PostStatus.PUBLISHED


@pytest.mark.asyncio
async def test_complete_after_error_does_not_publish(session_factory, make_event, make_post) -> None:
    await make_post()
    await _reconcile(session_factory, make_event(status="ERROR"))
    result = await _reconcile(session_factory, make_event())

    assert result.outcome is Outcome.DUPLICATE
    video, post = await _load(session_factory)
    assert video.status is VideoStatus.FAILED
    assert post.status is PostStatus.PROCESSING


@pytest.mark.asyncio
async def test_draft_post_gets_media_but_stays_draft(session_factory, make_event, make_post) -> None:
    await make_post(status=PostStatus.DRAFT)
    result = await _reconcile(session_factory, make_event())

    assert result.post_updated
    assert not result.post_published
    video, post = await _load(session_factory)
    assert post.status is PostStatus.DRAFT
    assert post.processed_video_id == video.video_id


@pytest.mark.asyncio
async def test_progress_status_is_ignored(session_factory, make_event) -> None:
    result = await _reconcile(session_factory, make_event(status="PROGRESSING"))

    assert result.outcome is Outcome.IGNORED
    video, _ = await _load(session_factory)
    assert video is None


@pytest.mark.asyncio
async def test_foreign_source_is_ignored(session_factory, make_event) -> None:
    body = make_event()
    body["source"] = "aws.s3"
    result = await _reconcile(session_factory, body)

    assert result.outcome is Outcome.IGNORED
    video, _ = await _load(session_factory)
    assert video is None
