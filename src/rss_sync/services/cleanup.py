# ABOUTME: Age-based removal of old articles.
# ABOUTME: Computes a calendar-month cutoff and deletes everything older.

import calendar
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rss_sync.db.repositories import ArticleRepository
from rss_sync.errors import DatabaseError
from rss_sync.models import CleanupResult

log = structlog.get_logger()


def months_before(moment: datetime, months: int) -> datetime:
    """Same day and time ``months`` calendar months earlier, clamped to month end."""
    index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


async def delete_old_articles(
    session_factory: async_sessionmaker[AsyncSession],
    months: int,
    now: datetime | None = None,
) -> CleanupResult:
    """Delete articles older than ``months`` months. ``months`` must be positive."""
    if months < 1:
        raise ValueError("months must be a positive integer")

    cutoff = months_before(now or datetime.now(UTC), months)
    try:
        async with session_factory() as session:
            deleted = await ArticleRepository(session).delete_older_than(cutoff)
            await session.commit()
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to clean up old articles") from e

    log.info("articles_cleaned_up", deleted=deleted, months=months, older_than=cutoff.isoformat())
    return CleanupResult(deleted_count=deleted, months_old=months, older_than=cutoff)
