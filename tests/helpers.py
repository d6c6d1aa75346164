# ABOUTME: Test helpers shared across modules: sample feed documents and a fake fetcher.
# ABOUTME: Imported directly by tests; fixtures stay in conftest.py.

from rss_sync.errors import FetchError
from rss_sync.models import RawEntry

SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test RSS feed</description>
    <item>
      <title>First Article</title>
      <link>https://example.com/article-1</link>
      <guid isPermaLink="false">article-1</guid>
      <description>Description of the first article</description>
      <content:encoded><![CDATA[<p>Full body of the first article</p>]]></content:encoded>
      <dc:creator>Jane Doe</dc:creator>
      <pubDate>Fri, 13 Feb 2026 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second Article</title>
      <link>https://example.com/article-2</link>
      <guid isPermaLink="false">article-2</guid>
      <description>Description of the second article</description>
      <pubDate>Fri, 13 Feb 2026 09:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""

SAMPLE_ATOM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Test Atom Feed</title>
  <link href="https://example.com"/>
  <id>urn:uuid:feed</id>
  <updated>2026-02-13T10:00:00Z</updated>
  <entry>
    <title>Atom Entry 1</title>
    <link href="https://example.com/atom-1"/>
    <id>urn:uuid:entry-1</id>
    <updated>2026-02-13T10:00:00Z</updated>
    <summary>Summary of atom entry 1</summary>
    <author><name>John Smith</name></author>
  </entry>
</feed>"""


def make_entry(link="https://example.com/post-1", title="Test Post", **kwargs) -> RawEntry:
    """Build a parsed entry the way the fetcher would."""
    return RawEntry(link=link, title=title, **kwargs)


class FakeFetcher:
    """Async stand-in for fetch_feed keyed by URL.

    Values are entry lists or exceptions to raise. Every call is recorded.
    """

    def __init__(self, responses: dict | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[str] = []

    async def __call__(self, url: str) -> list[RawEntry]:
        self.calls.append(url)
        response = self.responses.get(url)
        if response is None:
            raise FetchError(url, "HTTP 404")
        if isinstance(response, Exception):
            raise response
        return list(response)
