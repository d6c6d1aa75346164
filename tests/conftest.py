# ABOUTME: Shared test fixtures for rss-sync.
# ABOUTME: Provides a temporary SQLite database, session factory and a feed factory.

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rss_sync.db.models import Feed
from rss_sync.db.session import create_engine, init_db


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """File-backed SQLite database so every session sees committed data."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_feed(session_factory):
    """Factory fixture inserting a committed feed and returning its id."""

    async def _add(
        url: str = "https://example.com/feed.xml",
        title: str = "Test Feed",
        last_synced_at: datetime | None = None,
        owner_id: int | None = None,
    ) -> int:
        async with session_factory() as session:
            feed = Feed(title=title, url=url, last_synced_at=last_synced_at, owner_id=owner_id)
            session.add(feed)
            await session.commit()
            return feed.id

    return _add
