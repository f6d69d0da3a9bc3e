from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.database.postgres import get_async_session_factory

import app.models  # noqa: F401 - registers all ORM models with Base.metadata


def build_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    if make_url(database_url).get_backend_name() == "sqlite":
        return get_async_session_factory(database_url, expire_on_commit=False)
    # Webhook bursts (MediaConvert finishes every rendition of a batch at
    # once) arrive in parallel; size the pool above the shared default.
    return get_async_session_factory(
        database_url,
        expire_on_commit=False,
        pool_size=10,
        max_overflow=20,
    )


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        raise RuntimeError("Database not initialized")
    return factory


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    factory = get_session_factory(request)
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
