# ABOUTME: FastAPI route handlers for feeds, articles and synchronization.
# ABOUTME: Manual per-feed sync, API-key protected global sync and cleanup.

import math
import secrets

import structlog
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rss_sync.config import Settings, get_settings
from rss_sync.db.repositories import ArticleRepository, FeedRepository
from rss_sync.db.session import get_session_factory
from rss_sync.errors import ArticleNotFoundError, FeedNotFoundError
from rss_sync.models import (
    ArticleDetail,
    ArticleFilter,
    ArticlePage,
    ArticleView,
    CleanupResult,
    Envelope,
    FeedCreate,
    FeedPage,
    FeedRef,
    FeedSyncResult,
    FeedUpdate,
    FeedView,
    GlobalSyncReport,
    Pagination,
    SyncRequest,
    SyncStatus,
)
from rss_sync.services.cleanup import delete_old_articles
from rss_sync.services.synchronizer import FeedSynchronizer

log = structlog.get_logger()
router = APIRouter()

SessionFactory = async_sessionmaker[AsyncSession]


def get_synchronizer(request: Request) -> FeedSynchronizer:
    return request.app.state.synchronizer


def require_system_api_key(
    x_api_key: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject /system requests without the configured X-API-Key."""
    expected = settings.system_api_key.get_secret_value()
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid system API key")


def _pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit))


def _article_filter(
    feed_id: int | None, start_date: str | None, end_date: str | None, q: str | None
) -> ArticleFilter:
    try:
        return ArticleFilter(feed_id=feed_id, start_date=start_date, end_date=end_date, query=q)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e


async def _article_page(
    articles: ArticleRepository, filters: ArticleFilter, page: int, limit: int
) -> ArticlePage:
    items = await articles.find(filters, limit=limit, offset=(page - 1) * limit)
    total = await articles.count(filters)
    data = [ArticleView.model_validate(a) for a in items]
    return ArticlePage(data=data, pagination=_pagination(total, page, limit))


@router.get("/feeds", response_model=FeedPage)
async def list_feeds(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: str | None = Query(None),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """List feeds in id order, optionally filtered by category."""
    async with session_factory() as session:
        feeds = FeedRepository(session)
        items = await feeds.find_all(limit=limit, offset=(page - 1) * limit, category=category)
        total = await feeds.count(category)
        data = [FeedView.model_validate(f) for f in items]
    return FeedPage(data=data, pagination=_pagination(total, page, limit))


@router.post("/feeds", response_model=Envelope[FeedView], status_code=201)
async def create_feed(
    payload: FeedCreate,
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Subscribe to a new feed. An owner may register a URL only once."""
    async with session_factory() as session:
        feeds = FeedRepository(session)
        if await feeds.find_by_url(str(payload.url), payload.owner_id) is not None:
            raise HTTPException(status_code=409, detail="A feed with this URL already exists")
        try:
            feed = await feeds.create(payload)
            await session.commit()
        except IntegrityError as e:
            raise HTTPException(
                status_code=409, detail="A feed with this URL already exists"
            ) from e
        view = FeedView.model_validate(feed)

    log.info("feed_created", feed_id=view.id, url=view.url)
    return Envelope(message="RSS feed created successfully", data=view)


@router.get("/feeds/{feed_id}", response_model=FeedView)
async def get_feed(
    feed_id: int = Path(ge=1),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    async with session_factory() as session:
        feed = await FeedRepository(session).find_by_id(feed_id)
        if feed is None:
            raise FeedNotFoundError(feed_id)
        return FeedView.model_validate(feed)


@router.put("/feeds/{feed_id}", response_model=Envelope[FeedView])
async def update_feed(
    payload: FeedUpdate,
    feed_id: int = Path(ge=1),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Update a feed's title, URL, description or category."""
    changes = payload.model_dump(exclude_unset=True)
    # Title and URL can be replaced but not cleared.
    for field in ("title", "url"):
        if changes.get(field, "") is None:
            del changes[field]
    if "url" in changes:
        changes["url"] = str(changes["url"])

    async with session_factory() as session:
        feeds = FeedRepository(session)
        feed = await feeds.find_by_id(feed_id)
        if feed is None:
            raise FeedNotFoundError(feed_id)
        new_url = changes.get("url")
        if new_url and new_url != feed.url:
            if await feeds.find_by_url(new_url, feed.owner_id) is not None:
                raise HTTPException(status_code=409, detail="A feed with this URL already exists")
        try:
            await feeds.update(feed, changes)
            await session.commit()
        except IntegrityError as e:
            raise HTTPException(
                status_code=409, detail="A feed with this URL already exists"
            ) from e
        view = FeedView.model_validate(feed)

    log.info("feed_updated", feed_id=feed_id, fields=sorted(changes))
    return Envelope(message="RSS feed updated successfully", data=view)


@router.delete("/feeds/{feed_id}", response_model=Envelope[None])
async def delete_feed(
    feed_id: int = Path(ge=1),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Remove a feed together with its articles."""
    async with session_factory() as session:
        feeds = FeedRepository(session)
        feed = await feeds.find_by_id(feed_id)
        if feed is None:
            raise FeedNotFoundError(feed_id)
        await feeds.delete(feed)
        await session.commit()

    log.info("feed_deleted", feed_id=feed_id)
    return Envelope(message="RSS feed deleted successfully")


@router.get("/feeds/{feed_id}/articles", response_model=ArticlePage)
async def list_feed_articles(
    feed_id: int = Path(ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    q: str | None = Query(None),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Articles of one feed, newest first, with optional date range and text search."""
    filters = _article_filter(feed_id, start_date, end_date, q)

    async with session_factory() as session:
        if await FeedRepository(session).find_by_id(feed_id) is None:
            raise FeedNotFoundError(feed_id)
        return await _article_page(ArticleRepository(session), filters, page, limit)


@router.get("/articles", response_model=ArticlePage)
async def list_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    feed_id: int | None = Query(None, alias="feedId"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    q: str | None = Query(None),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Articles across all feeds, newest first."""
    filters = _article_filter(feed_id, start_date, end_date, q)

    async with session_factory() as session:
        return await _article_page(ArticleRepository(session), filters, page, limit)


@router.get("/articles/{link:path}", response_model=ArticleDetail)
async def get_article(
    link: str,
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """One article by its link, with the feed it belongs to."""
    async with session_factory() as session:
        article = await ArticleRepository(session).find_by_link(link)
        if article is None:
            raise ArticleNotFoundError(link)
        feed = await FeedRepository(session).find_by_id(article.feed_id)
        if feed is None:
            raise FeedNotFoundError(article.feed_id)
        return ArticleDetail(
            data=ArticleView.model_validate(article), feed=FeedRef.model_validate(feed)
        )


@router.post("/feeds/{feed_id}/sync", response_model=Envelope[FeedSyncResult])
async def sync_feed(
    feed_id: int = Path(ge=1),
    body: SyncRequest | None = Body(None),
    synchronizer: FeedSynchronizer = Depends(get_synchronizer),
):
    """Synchronize one feed now. Within five minutes of the last pass, requires forceSync."""
    force = body.force_sync if body else False
    result = await synchronizer.sync_feed(feed_id, force=force)
    return Envelope(message="Feed synchronized successfully", data=result)


@router.post(
    "/system/sync",
    response_model=Envelope[GlobalSyncReport],
    dependencies=[Depends(require_system_api_key)],
)
async def sync_all_feeds(synchronizer: FeedSynchronizer = Depends(get_synchronizer)):
    """Synchronize every feed, reporting per-feed outcomes."""
    log.info("global_sync_started")
    report = await synchronizer.sync_all()

    failed = [r for r in report.results if r.status is SyncStatus.ERROR]
    for outcome in failed:
        log.error(
            "global_sync_feed_failed", feed_id=outcome.feed_id, url=outcome.url, error=outcome.error
        )

    return Envelope(message="Global synchronization completed", data=report)


@router.delete(
    "/system/cleanup",
    response_model=Envelope[CleanupResult],
    dependencies=[Depends(require_system_api_key)],
)
async def cleanup_articles(
    months: int = Query(..., ge=1),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Delete articles older than the given number of months."""
    result = await delete_old_articles(session_factory, months)
    return Envelope(message="Old articles cleaned up successfully", data=result)
