# ABOUTME: Single-feed and global synchronization passes.
# ABOUTME: Fetch, normalize, bulk-write and stamp each feed; isolate failures per feed.

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rss_sync.config import get_settings
from rss_sync.db.repositories import ArticleRepository, FeedRepository
from rss_sync.errors import DatabaseError, FeedNotFoundError, RecentlySyncedError, SyncError
from rss_sync.models import FeedSyncResult, GlobalSyncReport, RawEntry, SyncOutcome, SyncStatus
from rss_sync.services.fetcher import fetch_feed
from rss_sync.services.gate import check_sync_gate
from rss_sync.services.normalizer import normalize_entries

log = structlog.get_logger()

Fetcher = Callable[[str], Awaitable[list[RawEntry]]]


class FeedSynchronizer:
    """Runs sync passes against the feed and article tables.

    Each pass uses its own sessions, so one feed's transaction never spans
    another's. A per-feed lock keeps a feed from being synchronized twice at
    once, whether the second attempt is manual or part of a global pass.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        fetcher: Fetcher | None = None,
        concurrency: int | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.fetcher = fetcher or fetch_feed
        self.concurrency = max(1, concurrency or get_settings().sync_concurrency)
        # Locks live only while some pass holds or waits on them.
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: Counter[int] = Counter()

    async def sync_feed(self, feed_id: int, *, force: bool = False) -> FeedSyncResult:
        """Run one sync pass for a feed.

        Raises FeedNotFoundError, RecentlySyncedError (unless ``force``),
        FetchError, ParseError or DatabaseError.
        """
        lock = self._locks.setdefault(feed_id, asyncio.Lock())
        self._lock_users[feed_id] += 1
        try:
            async with lock:
                return await self._sync_pass(feed_id, force=force)
        finally:
            self._lock_users[feed_id] -= 1
            if not self._lock_users[feed_id]:
                del self._lock_users[feed_id]
                del self._locks[feed_id]

    async def _sync_pass(self, feed_id: int, *, force: bool) -> FeedSyncResult:
        try:
            async with self.session_factory() as session:
                feed = await FeedRepository(session).find_by_id(feed_id)
                if feed is None:
                    raise FeedNotFoundError(feed_id)
                decision = check_sync_gate(feed.last_synced_at, force=force)
                url = feed.url
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to load feed") from e

        if not decision.eligible:
            raise RecentlySyncedError(feed_id, decision.retry_after)

        entries = await self.fetcher(url)
        articles = normalize_entries(entries, feed_id)

        try:
            async with self.session_factory() as session:
                feeds = FeedRepository(session)
                feed = await feeds.find_by_id(feed_id)
                if feed is None:
                    raise FeedNotFoundError(feed_id)
                inserted = await ArticleRepository(session).bulk_create(articles)
                synced_at = datetime.now(UTC)
                await feeds.mark_synced(feed, synced_at)
                await session.commit()
        except SQLAlchemyError as e:
            log.error("feed_sync_db_error", feed_id=feed_id, error=str(e))
            raise DatabaseError("Failed to synchronize feed") from e

        log.info("feed_synced", feed_id=feed_id, url=url, entries=len(entries), inserted=inserted)
        return FeedSyncResult(articles_count=inserted, feed_id=feed_id, last_sync_date=synced_at)

    async def _sync_outcome(self, feed_id: int, url: str) -> SyncOutcome:
        try:
            result = await self.sync_feed(feed_id)
        except RecentlySyncedError as e:
            log.info("feed_sync_skipped", feed_id=feed_id, retry_after=e.retry_after)
            return SyncOutcome(feed_id=feed_id, url=url, status=SyncStatus.SUCCESS)
        except SyncError as e:
            log.warning("feed_sync_failed", feed_id=feed_id, url=url, error=e.message)
            return SyncOutcome(feed_id=feed_id, url=url, status=SyncStatus.ERROR, error=e.message)
        except Exception as e:
            log.exception("feed_sync_failed", feed_id=feed_id, url=url)
            error = str(e) or type(e).__name__
            return SyncOutcome(feed_id=feed_id, url=url, status=SyncStatus.ERROR, error=error)

        return SyncOutcome(
            feed_id=feed_id,
            url=url,
            articles_count=result.articles_count,
            status=SyncStatus.SUCCESS,
        )

    async def sync_all(self) -> GlobalSyncReport:
        """Synchronize every feed in id order, never forcing past the gate.

        Up to ``concurrency`` feeds run at a time. Per-feed failures become
        error outcomes; only failing to list the feeds raises.
        """
        start_time = datetime.now(UTC)
        try:
            async with self.session_factory() as session:
                feeds = [(feed.id, feed.url) for feed in await FeedRepository(session).find_all()]
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to perform global synchronization") from e

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(feed_id: int, url: str) -> SyncOutcome:
            async with semaphore:
                return await self._sync_outcome(feed_id, url)

        results = list(await asyncio.gather(*(bounded(fid, url) for fid, url in feeds)))

        successful = [r for r in results if r.status is SyncStatus.SUCCESS]
        report = GlobalSyncReport(
            total_feeds=len(feeds),
            successful_syncs=len(successful),
            failed_syncs=len(feeds) - len(successful),
            new_articles=sum(r.articles_count for r in successful),
            results=results,
            start_time=start_time,
            end_time=datetime.now(UTC),
        )
        log.info(
            "global_sync_complete",
            total_feeds=report.total_feeds,
            successful=report.successful_syncs,
            failed=report.failed_syncs,
            new_articles=report.new_articles,
            duration=(report.end_time - report.start_time).total_seconds(),
        )
        return report
