"""
Canonical item schema and fetch results for the crawl pipeline.

Every payload format is normalized to CanonicalItem before it reaches the
ingestor. Field names are shared by the ingestor and the keyword linker.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class SourceType(str, Enum):
    """Supported source kinds."""

    REDDIT = "reddit"
    WORDPRESS = "wordpress"
    FEED = "feed"


class PayloadFormat(str, Enum):
    """Closed set of payload formats the normalizer understands."""

    RSS = "rss"
    ATOM = "atom"
    REDDIT_LISTING = "reddit_listing"
    WORDPRESS_POSTS = "wordpress_posts"


class CanonicalItem(BaseModel):
    """A single normalized content item, independent of its payload format."""

    external_id: str = Field(..., min_length=1, description="GUID, post id or link")
    title: str = Field(default="", description="Plain-text title")
    body: str = Field(default="", description="Plain-text body")
    summary: str | None = Field(default=None, description="Plain-text excerpt")
    url: str | None = Field(default=None, description="Canonical link")
    author: str | None = Field(default=None, description="Free-text author")
    tags: list[str] = Field(default_factory=list)
    published_at: datetime = Field(default_factory=_utc_now)

    # Data-quality flags
    synthetic_id: bool = Field(
        default=False,
        description="Identifier was generated because the item had neither id nor link",
    )
    date_fallback: bool = Field(
        default=False,
        description="Publish date could not be parsed and was set to ingest time",
    )

    @field_validator("published_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Ensure timestamp has timezone info (default to UTC)."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


@dataclass
class FetchedPayload:
    """Raw response body plus the cache validators it came with."""

    body: str
    url: str
    content_type: str = ""
    etag: str | None = None
    last_modified: str | None = None
    status_code: int = 200


@dataclass
class NotModified:
    """The source answered 304; its cache validators are still current."""

    url: str
    etag: str | None = None
    last_modified: str | None = None


@dataclass
class NormalizedFeed:
    """Output of the normalizer: items plus data-quality counters."""

    format: PayloadFormat
    items: list[CanonicalItem] = field(default_factory=list)
    dropped: int = 0
    synthetic_ids: int = 0
    date_fallbacks: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def warnings(self) -> int:
        """Total number of data-quality warnings raised while normalizing."""
        return self.dropped + self.synthetic_ids + self.date_fallbacks
