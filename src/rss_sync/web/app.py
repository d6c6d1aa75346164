# ABOUTME: FastAPI application factory with database lifespan and error rendering.
# ABOUTME: Main entry point for the rss-sync JSON API.

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rss_sync.config import get_settings
from rss_sync.db.session import close_db, get_session_factory, init_db
from rss_sync.errors import RecentlySyncedError, SyncError
from rss_sync.logconfig import configure_logging
from rss_sync.services.synchronizer import FeedSynchronizer

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan context for database setup/teardown."""
    configure_logging(get_settings().log_level)
    logger.info("app_startup")
    await init_db()
    app.state.synchronizer = FeedSynchronizer(get_session_factory())
    yield
    logger.info("app_shutdown")
    await close_db()


async def sync_error_handler(_request: Request, exc: SyncError) -> JSONResponse:
    """Render engine errors as {"status", "type", "message"}."""
    body = {"status": "error", "type": exc.error_type, "message": exc.message}
    headers = None
    if isinstance(exc, RecentlySyncedError):
        body["retryAfter"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error("request_failed", type=exc.error_type, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="rss-sync",
        description="RSS feed subscriptions and article synchronization",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(SyncError, sync_error_handler)

    from rss_sync.web.routes import router

    app.include_router(router)

    return app


app = create_app()
