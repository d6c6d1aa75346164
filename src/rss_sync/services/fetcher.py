# ABOUTME: Fetches RSS/Atom documents over HTTP and parses them into raw entries.
# ABOUTME: Fetch failures raise FetchError; unrecognised documents raise ParseError.

import asyncio
import io
from urllib.parse import urlsplit

import feedparser
import httpx
import structlog

from rss_sync.config import Settings, get_settings
from rss_sync.errors import FetchError, ParseError
from rss_sync.models import RawEntry

log = structlog.get_logger()


def _entry_content(entry) -> str | None:
    """Full content (content:encoded in RSS, <content> in Atom), if any."""
    for block in entry.get("content") or []:
        value = block.get("value")
        if value:
            return value
    return None


def _to_raw_entry(entry) -> RawEntry:
    published = entry.get("published") or entry.get("updated")
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    return RawEntry(
        link=entry.get("link") or None,
        title=entry.get("title") or None,
        description=entry.get("summary") or None,
        published=published or None,
        published_parsed=tuple(parsed) if parsed else None,
        author=entry.get("author") or None,
        content=_entry_content(entry),
        guid=entry.get("id") or None,
    )


def parse_feed(content: bytes | str, url: str) -> list[RawEntry]:
    """Parse a syndication document into entries, in document order.

    Raises ParseError when feedparser recognises neither RSS nor Atom.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    # A stream keeps feedparser from treating the body as a path or URL.
    parsed = feedparser.parse(io.BytesIO(content))
    if not parsed.get("version"):
        reason = str(parsed.get("bozo_exception") or "not an RSS or Atom document")
        log.error("feed_parse_error", url=url, error=reason)
        raise ParseError(url, reason)

    return [_to_raw_entry(entry) for entry in parsed.entries]


async def fetch_feed(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> list[RawEntry]:
    """Download a feed and parse it. One request, no retries."""
    if urlsplit(url).scheme not in ("http", "https"):
        raise FetchError(url, "URL must use http or https")

    log.info("fetching_feed", url=url)
    try:
        if client is None:
            settings = settings or get_settings()
            async with httpx.AsyncClient(
                timeout=settings.feed_timeout,
                headers={"User-Agent": settings.feed_user_agent},
                follow_redirects=True,
            ) as owned_client:
                response = await owned_client.get(url)
        else:
            response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        log.error("feed_fetch_error", url=url, status=e.response.status_code)
        raise FetchError(url, f"HTTP {e.response.status_code}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        log.error("feed_fetch_error", url=url, error=str(e))
        raise FetchError(url, str(e) or type(e).__name__) from e

    return await asyncio.to_thread(parse_feed, response.content, url)
