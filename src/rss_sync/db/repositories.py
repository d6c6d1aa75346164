# ABOUTME: Feed and article repositories over an async SQLAlchemy session.
# ABOUTME: ArticleRepository.bulk_create is the idempotent writer keyed on Article.link.

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rss_sync.db.models import Article, Feed
from rss_sync.errors import DatabaseError
from rss_sync.models import ArticleFilter, ArticleRecord, FeedCreate

log = structlog.get_logger()

# Keeps each multi-row INSERT well below SQLite's bound-parameter limit.
BULK_CHUNK_SIZE = 500


class FeedRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, feed_id: int) -> Feed | None:
        return await self.session.get(Feed, feed_id)

    async def find_all(
        self, limit: int | None = None, offset: int = 0, category: str | None = None
    ) -> Sequence[Feed]:
        """All feeds in id order, optionally paginated and filtered by category."""
        query = select(Feed).order_by(Feed.id)
        if category:
            query = query.where(Feed.category == category)
        if limit is not None:
            query = query.offset(offset).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, category: str | None = None) -> int:
        query = select(func.count(Feed.id))
        if category:
            query = query.where(Feed.category == category)
        return (await self.session.execute(query)).scalar_one()

    async def find_by_url(self, url: str, owner_id: int | None = None) -> Feed | None:
        query = select(Feed).where(Feed.url == url)
        if owner_id is None:
            query = query.where(Feed.owner_id.is_(None))
        else:
            query = query.where(Feed.owner_id == owner_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, data: FeedCreate) -> Feed:
        feed = Feed(
            title=data.title,
            url=str(data.url),
            description=data.description,
            category=data.category,
            owner_id=data.owner_id,
        )
        self.session.add(feed)
        await self.session.flush()
        return feed

    async def update(self, feed: Feed, changes: dict[str, Any]) -> Feed:
        for field, value in changes.items():
            setattr(feed, field, value)
        await self.session.flush()
        return feed

    async def mark_synced(self, feed: Feed, when: datetime) -> None:
        """Record a completed sync pass on the feed."""
        feed.last_synced_at = when
        await self.session.flush()

    async def delete(self, feed: Feed) -> None:
        await self.session.delete(feed)
        await self.session.flush()


class ArticleRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def bulk_create(self, articles: Sequence[ArticleRecord]) -> int:
        """Insert every article whose link is not stored yet.

        Existing links (and repeats inside the batch) are skipped silently.
        All chunks run in one savepoint, so a storage failure leaves nothing
        behind and surfaces as DatabaseError.

        Returns the number of rows actually inserted.
        """
        if not articles:
            return 0

        now = datetime.now(UTC)
        rows = [{**article.model_dump(), "created_at": now} for article in articles]
        inserted = 0
        try:
            async with self.session.begin_nested():
                for start in range(0, len(rows), BULK_CHUNK_SIZE):
                    chunk = rows[start : start + BULK_CHUNK_SIZE]
                    stmt = (
                        insert(Article)
                        .values(chunk)
                        .on_conflict_do_nothing(index_elements=[Article.link])
                        .returning(Article.link)
                    )
                    result = await self.session.execute(stmt)
                    inserted += len(result.scalars().all())
        except SQLAlchemyError as e:
            log.error("bulk_insert_failed", batch=len(rows), error=str(e))
            raise DatabaseError("Failed to store articles") from e

        log.info("articles_written", batch=len(rows), inserted=inserted)
        return inserted

    async def exists(self, link: str) -> bool:
        result = await self.session.execute(select(Article.id).where(Article.link == link))
        return result.scalar_one_or_none() is not None

    async def find_by_link(self, link: str) -> Article | None:
        result = await self.session.execute(select(Article).where(Article.link == link))
        return result.scalar_one_or_none()

    def _filtered(self, query, filters: ArticleFilter):
        if filters.feed_id is not None:
            query = query.where(Article.feed_id == filters.feed_id)
        if filters.start_date is not None:
            query = query.where(Article.published_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(Article.published_at <= filters.end_date)
        if filters.query:
            pattern = f"%{filters.query}%"
            query = query.where(
                or_(Article.title.ilike(pattern), Article.description.ilike(pattern))
            )
        return query

    async def find(
        self, filters: ArticleFilter, limit: int | None = None, offset: int = 0
    ) -> Sequence[Article]:
        """Articles matching the filter, newest publication first."""
        query = self._filtered(select(Article), filters).order_by(
            Article.published_at.desc(), Article.id.desc()
        )
        if limit is not None:
            query = query.offset(offset).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, filters: ArticleFilter) -> int:
        query = self._filtered(select(func.count(Article.id)), filters)
        return (await self.session.execute(query)).scalar_one()

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete articles published (or, when undated, created) before the cutoff."""
        stmt = (
            delete(Article)
            .where(func.coalesce(Article.published_at, Article.created_at) < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
