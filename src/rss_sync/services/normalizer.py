# ABOUTME: Maps parsed feed entries onto article records.
# ABOUTME: Chooses the identity key (link, then GUID), defaults titles and parses dates.

import contextlib
from collections.abc import Iterable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import structlog

from rss_sync.models import ArticleRecord, RawEntry

log = structlog.get_logger()

DEFAULT_TITLE = "No title"


def parse_published(entry: RawEntry) -> datetime | None:
    """Publication date in UTC, or None when absent or unparseable."""
    if entry.published_parsed:
        with contextlib.suppress(ValueError, TypeError):
            return datetime(*entry.published_parsed[:6], tzinfo=UTC)

    if not entry.published:
        return None

    value = None
    with contextlib.suppress(ValueError, TypeError, IndexError):
        value = parsedate_to_datetime(entry.published)
    if value is None:
        with contextlib.suppress(ValueError):
            value = datetime.fromisoformat(entry.published)
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def normalize_entry(entry: RawEntry, feed_id: int) -> ArticleRecord | None:
    """Build the article for one entry, or None if it has no identity key."""
    key = entry.link or entry.guid
    if not key:
        return None

    return ArticleRecord(
        link=key,
        feed_id=feed_id,
        title=entry.title or DEFAULT_TITLE,
        description=entry.description,
        content=entry.content,
        author=entry.author,
        guid=entry.guid or entry.link,
        published_at=parse_published(entry),
    )


def normalize_entries(entries: Iterable[RawEntry], feed_id: int) -> list[ArticleRecord]:
    articles = []
    for entry in entries:
        article = normalize_entry(entry, feed_id)
        if article is None:
            log.warning("entry_dropped", feed_id=feed_id, title=entry.title)
            continue
        articles.append(article)
    return articles
