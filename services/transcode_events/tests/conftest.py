import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401 - register with Base
from app.config import Settings
from app.content.enums import PostStatus
from app.content.models import Post
from app.main import create_app
from shared.database.postgres import Base

TEST_DATABASE_URL = "sqlite+aiosqlite://"

DEFAULT_OUTPUTS = [
    "s3://docfliq-user-content-dev/processed/video/u1/clip/hls/clip720p.m3u8",
    "s3://docfliq-user-content-dev/processed/video/u1/clip/hls/clip1080p.m3u8",
    "s3://docfliq-user-content-dev/processed/video/u1/clip/mp4/clipdownload.mp4",
    "s3://docfliq-user-content-dev/processed/video/u1/clip/thumb/clipthumb.0000000.jpg",
]


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    async def send(self, text: str) -> None:
        self.messages.append(text)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        listener_database_url=TEST_DATABASE_URL,
        env_name="test",
        chat_webhook_url="",
        listener_notify_timeout_seconds=0.5,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def listener_app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    notifier: RecordingNotifier,
) -> FastAPI:
    return create_app(settings, session_factory=session_factory, notifier=notifier)


@pytest_asyncio.fixture
async def async_client(listener_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=listener_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await listener_app.state.dispatcher.drain()


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Build an EventBridge "MediaConvert Job State Change" body."""

    def _make(
        job_id: str = "1700000000000-abc123",
        status: str = "COMPLETE",
        outputs: list[str] | None = None,
        **detail: Any,
    ) -> dict[str, Any]:
        if outputs is None:
            outputs = DEFAULT_OUTPUTS if status == "COMPLETE" else []
        body_detail: dict[str, Any] = {
            "status": status,
            "jobId": job_id,
            "queue": "arn:aws:mediaconvert:ap-south-1:123456789012:queues/Default",
            "timestamp": "2026-10-18T09:30:00Z",
            "outputGroupDetails": [
                {
                    "type": "HLS_GROUP",
                    "outputDetails": [
                        {
                            "outputFilePaths": [path],
                            "durationInMs": 61500,
                            "videoDetails": {"widthInPx": 1920, "heightInPx": 1080},
                        }
                        for path in outputs
                    ],
                }
            ],
        }
        body_detail.update(detail)
        return {
            "version": "0",
            "source": "aws.mediaconvert",
            "detail-type": "MediaConvert Job State Change",
            "time": "2026-10-18T09:30:01Z",
            "detail": body_detail,
        }

    return _make


@pytest.fixture
def make_post(db_session: AsyncSession) -> Callable[..., Any]:
    async def _make(
        job_id: str | None = "1700000000000-abc123",
        status: PostStatus = PostStatus.PROCESSING,
    ) -> Post:
        post = Post(
            author_id=uuid.uuid4(),
            title="Grand rounds: cardiac imaging",
            transcode_job_id=job_id,
            status=status,
        )
        db_session.add(post)
        await db_session.commit()
        return post

    return _make
