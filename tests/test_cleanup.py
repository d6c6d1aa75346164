# ABOUTME: Tests for age-based article cleanup.
# ABOUTME: Verifies month arithmetic and which articles are removed.

from datetime import UTC, datetime, timedelta

import pytest

from rss_sync.db.repositories import ArticleRepository
from rss_sync.models import ArticleFilter, ArticleRecord
from rss_sync.services.cleanup import delete_old_articles, months_before


def test_months_before_simple():
    assert months_before(datetime(2026, 10, 19, tzinfo=UTC), 6) == datetime(2026, 4, 19, tzinfo=UTC)


def test_months_before_crosses_year():
    assert months_before(datetime(2026, 2, 10, tzinfo=UTC), 3) == datetime(2025, 11, 10, tzinfo=UTC)


def test_months_before_clamps_to_month_end():
    assert months_before(datetime(2026, 3, 31, tzinfo=UTC), 1) == datetime(2026, 2, 28, tzinfo=UTC)


async def test_delete_old_articles(session_factory, add_feed):
    feed_id = await add_feed()
    now = datetime(2026, 10, 19, tzinfo=UTC)
    async with session_factory() as session:
        await ArticleRepository(session).bulk_create(
            [
                ArticleRecord(
                    link="https://example.com/ancient",
                    feed_id=feed_id,
                    title="Ancient",
                    published_at=now - timedelta(days=365),
                ),
                ArticleRecord(
                    link="https://example.com/recent",
                    feed_id=feed_id,
                    title="Recent",
                    published_at=now - timedelta(days=30),
                ),
            ]
        )
        await session.commit()

    result = await delete_old_articles(session_factory, months=6, now=now)

    assert result.deleted_count == 1
    assert result.months_old == 6
    assert result.older_than == datetime(2026, 4, 19, tzinfo=UTC)
    async with session_factory() as session:
        remaining = await ArticleRepository(session).find(ArticleFilter())
    assert [a.link for a in remaining] == ["https://example.com/recent"]


@pytest.mark.parametrize("months", [0, -1])
async def test_delete_old_articles_rejects_non_positive(session_factory, months):
    with pytest.raises(ValueError):
        await delete_old_articles(session_factory, months=months)
