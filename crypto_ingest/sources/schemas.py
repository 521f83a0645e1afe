"""Data models for the sources registry."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

DEFAULT_ERROR_RING_SIZE = 10
DEFAULT_UNHEALTHY_THRESHOLD = 3


@dataclass
class CrawlError:
    """One entry of a source's bounded crawl error history."""

    timestamp: datetime
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp.isoformat(), "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CrawlError":
        ts = data.get("timestamp")
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts)
        return cls(
            timestamp=ts or datetime.now(timezone.utc),
            message=data.get("message", data.get("error", "")),
        )


@dataclass
class Source:
    """A crawlable source (subreddit, WordPress site, RSS/Atom feed).

    Identified by (source_type, identifier), where identifier is the
    subreddit name, the site URL or the feed URL. Carries its own
    scheduling and health state; only the crawl of this source writes it.
    """

    source_type: str
    identifier: str
    display_name: str = ""
    description: str = ""
    is_active: bool = True
    crawl_interval_minutes: int = 60
    last_crawled_at: datetime | None = None
    last_successful_crawl_at: datetime | None = None
    consecutive_failures: int = 0
    total_items_crawled: int = 0
    average_sentiment: float | None = None
    etag: str | None = None
    last_modified: str | None = None
    crawl_errors: list[CrawlError] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_type, self.identifier)

    @property
    def label(self) -> str:
        return self.display_name or self.identifier

    @property
    def next_crawl_at(self) -> datetime | None:
        """When the source becomes due again, None if it has never been crawled."""
        if self.last_crawled_at is None:
            return None
        return self.last_crawled_at + timedelta(minutes=self.crawl_interval_minutes)

    def is_due(self, now: datetime, disable_threshold: int) -> bool:
        """Whether the scheduler should dispatch this source at ``now``.

        Missing or unusable scheduling state counts as due.
        """
        if not self.is_active or self.consecutive_failures > disable_threshold:
            return False
        if self.last_crawled_at is None or not self.crawl_interval_minutes:
            return True
        last = self.last_crawled_at
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return now >= last + timedelta(minutes=self.crawl_interval_minutes)

    def is_healthy(self, unhealthy_threshold: int = DEFAULT_UNHEALTHY_THRESHOLD) -> bool:
        return self.is_active and self.consecutive_failures <= unhealthy_threshold

    def record_success(
        self,
        now: datetime,
        etag: str | None = None,
        last_modified: str | None = None,
    ) -> None:
        """Successful fetch: reset the failure streak and store new validators."""
        self.last_successful_crawl_at = now
        self.consecutive_failures = 0
        if etag is not None:
            self.etag = etag
        if last_modified is not None:
            self.last_modified = last_modified

    def record_failure(
        self,
        now: datetime,
        message: str,
        ring_size: int = DEFAULT_ERROR_RING_SIZE,
    ) -> None:
        """Failed fetch or parse: bump the failure streak and remember the error."""
        self.consecutive_failures += 1
        self.crawl_errors.append(CrawlError(timestamp=now, message=message))
        if len(self.crawl_errors) > ring_size:
            self.crawl_errors = self.crawl_errors[-ring_size:]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for CLI/JSON output."""
        return {
            "id": self.id,
            "source_type": self.source_type,
            "identifier": self.identifier,
            "display_name": self.display_name,
            "is_active": self.is_active,
            "crawl_interval_minutes": self.crawl_interval_minutes,
            "last_crawled_at": self.last_crawled_at.isoformat() if self.last_crawled_at else None,
            "last_successful_crawl_at": (
                self.last_successful_crawl_at.isoformat()
                if self.last_successful_crawl_at
                else None
            ),
            "consecutive_failures": self.consecutive_failures,
            "total_items_crawled": self.total_items_crawled,
            "average_sentiment": self.average_sentiment,
            "crawl_errors": [e.to_dict() for e in self.crawl_errors],
        }
