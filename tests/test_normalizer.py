# ABOUTME: Tests for entry-to-article normalization.
# ABOUTME: Covers identity key fallback, dropped entries, default titles and date parsing.

from datetime import UTC, datetime

from helpers import make_entry

from rss_sync.models import RawEntry
from rss_sync.services.normalizer import DEFAULT_TITLE, normalize_entries, normalize_entry


def test_link_is_identity_key():
    entry = make_entry(link="https://example.com/a", guid="guid-a")
    article = normalize_entry(entry, feed_id=7)

    assert article.link == "https://example.com/a"
    assert article.guid == "guid-a"
    assert article.feed_id == 7


def test_guid_used_when_link_missing():
    entry = RawEntry(guid="urn:uuid:1234", title="Only a guid")
    article = normalize_entry(entry, feed_id=1)

    assert article.link == "urn:uuid:1234"
    assert article.guid == "urn:uuid:1234"


def test_guid_defaults_to_link():
    article = normalize_entry(make_entry(link="https://example.com/b"), feed_id=1)
    assert article.guid == "https://example.com/b"


def test_entry_without_link_or_guid_is_dropped():
    entries = [RawEntry(title="Orphan"), make_entry(link="https://example.com/kept")]

    assert normalize_entry(entries[0], feed_id=1) is None
    articles = normalize_entries(entries, feed_id=1)
    assert [a.link for a in articles] == ["https://example.com/kept"]


def test_missing_title_gets_placeholder():
    article = normalize_entry(RawEntry(link="https://example.com/untitled"), feed_id=1)
    assert article.title == DEFAULT_TITLE == "No title"


def test_optional_fields_carried_over():
    entry = make_entry(description="Short", content="<p>Long</p>", author="Jane Doe")
    article = normalize_entry(entry, feed_id=1)

    assert article.description == "Short"
    assert article.content == "<p>Long</p>"
    assert article.author == "Jane Doe"


def test_date_from_parsed_struct():
    entry = make_entry(published_parsed=(2026, 2, 13, 10, 30, 0, 4, 44, 0))
    article = normalize_entry(entry, feed_id=1)
    assert article.published_at == datetime(2026, 2, 13, 10, 30, tzinfo=UTC)


def test_date_from_rfc822_string():
    entry = make_entry(published="Fri, 13 Feb 2026 12:00:00 +0200")
    article = normalize_entry(entry, feed_id=1)
    assert article.published_at == datetime(2026, 2, 13, 10, 0, tzinfo=UTC)


def test_date_from_iso_string():
    entry = make_entry(published="2026-02-13T10:00:00+00:00")
    article = normalize_entry(entry, feed_id=1)
    assert article.published_at == datetime(2026, 2, 13, 10, 0, tzinfo=UTC)


def test_unparseable_date_is_none():
    entry = make_entry(published="sometime last week")
    article = normalize_entry(entry, feed_id=1)
    assert article.published_at is None


def test_missing_date_is_none():
    assert normalize_entry(make_entry(), feed_id=1).published_at is None


def test_normalization_is_deterministic():
    entries = [make_entry(link=f"https://example.com/{i}") for i in range(3)]
    assert normalize_entries(entries, feed_id=2) == normalize_entries(entries, feed_id=2)
