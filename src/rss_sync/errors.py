# ABOUTME: Typed errors raised by the synchronization engine.
# ABOUTME: Each error carries the HTTP status and type name the web layer renders.


class SyncError(Exception):
    """Base class for every failure the synchronization engine reports."""

    status_code: int = 500
    error_type: str = "SyncError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FeedNotFoundError(SyncError):
    status_code = 404
    error_type = "NotFoundError"

    def __init__(self, feed_id: int) -> None:
        super().__init__(f"RSS feed {feed_id} not found")
        self.feed_id = feed_id


class ArticleNotFoundError(SyncError):
    status_code = 404
    error_type = "NotFoundError"

    def __init__(self, link: str) -> None:
        super().__init__(f"Article {link} not found")
        self.link = link


class FetchError(SyncError):
    """The feed URL could not be retrieved (invalid URL, network failure, bad status)."""

    status_code = 400
    error_type = "FetchError"

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Could not fetch RSS feed {url}: {reason}")
        self.url = url
        self.reason = reason


class ParseError(SyncError):
    """The retrieved document is not RSS or Atom."""

    status_code = 400
    error_type = "ParseError"

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Invalid RSS feed format at {url}: {reason}")
        self.url = url
        self.reason = reason


class RecentlySyncedError(SyncError):
    """The sync gate rejected a manual sync; ``retry_after`` is in seconds."""

    status_code = 429
    error_type = "RecentlySyncedError"

    def __init__(self, feed_id: int, retry_after: int) -> None:
        super().__init__(
            f"Feed {feed_id} was recently synchronized. "
            f"Retry in {retry_after}s or use forceSync"
        )
        self.feed_id = feed_id
        self.retry_after = retry_after


class DatabaseError(SyncError):
    error_type = "DatabaseError"
