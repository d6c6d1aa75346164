# ABOUTME: CLI entry point for rss-sync.
# ABOUTME: Supports 'serve', 'sync', 'sync-feed' and 'cleanup' commands.

import argparse
import asyncio
import sys

import structlog
import uvicorn

from rss_sync.config import get_settings
from rss_sync.errors import SyncError
from rss_sync.logconfig import configure_logging

log = structlog.get_logger()


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the API server."""
    settings = get_settings()
    host = args.host or settings.host
    port = args.port or settings.port
    log.info("starting_server", host=host, port=port)
    uvicorn.run("rss_sync.web.app:app", host=host, port=port, reload=args.reload)


async def _run_sync_all() -> None:
    from rss_sync.db.session import close_db, get_session_factory, init_db
    from rss_sync.services.synchronizer import FeedSynchronizer

    await init_db()
    try:
        report = await FeedSynchronizer(get_session_factory()).sync_all()
    finally:
        await close_db()

    for outcome in report.results:
        line = f"[{outcome.status}] feed {outcome.feed_id} {outcome.url}: {outcome.articles_count}"
        if outcome.error:
            line += f" ({outcome.error})"
        print(line)
    print(
        f"{report.successful_syncs}/{report.total_feeds} feeds synchronized, "
        f"{report.failed_syncs} failed, {report.new_articles} new articles"
    )


async def _run_sync_feed(feed_id: int, force: bool) -> None:
    from rss_sync.db.session import close_db, get_session_factory, init_db
    from rss_sync.services.synchronizer import FeedSynchronizer

    await init_db()
    try:
        result = await FeedSynchronizer(get_session_factory()).sync_feed(feed_id, force=force)
    finally:
        await close_db()
    print(f"feed {result.feed_id}: {result.articles_count} new articles")


async def _run_cleanup(months: int) -> None:
    from rss_sync.db.session import close_db, get_session_factory, init_db
    from rss_sync.services.cleanup import delete_old_articles

    await init_db()
    try:
        result = await delete_old_articles(get_session_factory(), months)
    finally:
        await close_db()
    print(f"deleted {result.deleted_count} articles older than {result.older_than:%Y-%m-%d}")


def cmd_sync(_args: argparse.Namespace) -> None:
    """Synchronize every feed."""
    asyncio.run(_run_sync_all())


def cmd_sync_feed(args: argparse.Namespace) -> None:
    """Synchronize a single feed."""
    asyncio.run(_run_sync_feed(args.feed_id, args.force))


def cmd_cleanup(args: argparse.Namespace) -> None:
    """Delete old articles."""
    asyncio.run(_run_cleanup(args.months))


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="rss-sync", description="RSS feed synchronizer")
    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # sync
    subparsers.add_parser("sync", help="Synchronize all feeds")

    # sync-feed
    feed_parser = subparsers.add_parser("sync-feed", help="Synchronize one feed")
    feed_parser.add_argument("feed_id", type=_positive_int)
    feed_parser.add_argument("--force", action="store_true", help="Ignore the minimum interval")

    # cleanup
    cleanup_parser = subparsers.add_parser("cleanup", help="Delete old articles")
    cleanup_parser.add_argument("--months", type=_positive_int, required=True)

    args = parser.parse_args()
    configure_logging(get_settings().log_level)

    commands = {
        "serve": cmd_serve,
        "sync": cmd_sync,
        "sync-feed": cmd_sync_feed,
        "cleanup": cmd_cleanup,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        command(args)
    except SyncError as e:
        log.error("command_failed", command=args.command, type=e.error_type, error=e.message)
        sys.exit(2)


if __name__ == "__main__":
    main()
