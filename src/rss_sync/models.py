# ABOUTME: Pydantic schemas for parsed entries, sync reports and API payloads.
# ABOUTME: API-facing models serialize with camelCase aliases.

from datetime import UTC, datetime
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for models rendered over HTTP: camelCase out, either case in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SyncStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class RawEntry(BaseModel):
    """One entry as parsed from an RSS/Atom document, before normalization."""

    model_config = ConfigDict(frozen=True)

    link: str | None = None
    title: str | None = None
    description: str | None = None
    published: str | None = None
    published_parsed: tuple[int, ...] | None = None
    author: str | None = None
    content: str | None = None
    guid: str | None = None


class ArticleRecord(BaseModel):
    """A normalized article ready for the bulk writer."""

    link: str
    feed_id: int
    title: str
    description: str | None = None
    content: str | None = None
    author: str | None = None
    guid: str | None = None
    published_at: datetime | None = None


class SyncOutcome(ApiModel):
    """Result of one feed within a global sync pass."""

    feed_id: int
    url: str
    articles_count: int = 0
    status: SyncStatus
    error: str | None = None


class GlobalSyncReport(ApiModel):
    total_feeds: int
    successful_syncs: int
    failed_syncs: int
    new_articles: int
    results: list[SyncOutcome]
    start_time: datetime
    end_time: datetime


class FeedSyncResult(ApiModel):
    """Result of a manual single-feed sync."""

    articles_count: int
    feed_id: int
    last_sync_date: datetime


class SyncRequest(ApiModel):
    force_sync: bool = False


class ArticleFilter(BaseModel):
    """Explicit filter for article queries, validated once at the boundary."""

    feed_id: int | None = Field(default=None, ge=1)
    start_date: datetime | None = None
    end_date: datetime | None = None
    query: str | None = Field(default=None, min_length=2)

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        # Stored timestamps are UTC without offset; compare in the same frame.
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @model_validator(mode="after")
    def _check_range(self) -> "ArticleFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class FeedCreate(ApiModel):
    """Schema for registering a new feed."""

    title: str = Field(min_length=1, max_length=255)
    url: HttpUrl
    description: str | None = Field(default=None, max_length=1000)
    category: str | None = Field(default=None, max_length=100)
    owner_id: int | None = None


class FeedUpdate(ApiModel):
    """Partial feed update; fields left out keep their stored value."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    url: HttpUrl | None = None
    description: str | None = Field(default=None, max_length=1000)
    category: str | None = Field(default=None, max_length=100)


class FeedView(ApiModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: str
    description: str | None
    category: str | None
    owner_id: int | None
    last_synced_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ArticleView(ApiModel):
    model_config = ConfigDict(from_attributes=True)

    link: str
    feed_id: int
    title: str
    description: str | None
    content: str | None
    author: str | None
    guid: str | None
    published_at: datetime | None
    created_at: datetime


class FeedRef(ApiModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str


class ArticleDetail(ApiModel):
    """One article together with the feed it came from."""

    data: ArticleView
    feed: FeedRef


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    total_pages: int


class FeedPage(ApiModel):
    data: list[FeedView]
    pagination: Pagination


class ArticlePage(ApiModel):
    data: list[ArticleView]
    pagination: Pagination


class CleanupResult(ApiModel):
    deleted_count: int
    months_old: int
    older_than: datetime


class Envelope(ApiModel, Generic[T]):
    message: str
    data: T | None = None
