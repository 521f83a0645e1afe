"""Configuration for crawl cycles."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CrawlConfig(BaseSettings):
    """
    Concurrency, pacing and deadline settings for crawl cycles.

    All settings can be overridden via environment variables with CRAWL_ prefix.
    Example: CRAWL_FEED_CONCURRENCY=5
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Sources of one type crawled at the same time
    feed_concurrency: int = Field(default=3, ge=1, le=50)
    reddit_concurrency: int = Field(default=1, ge=1, le=10)
    wordpress_concurrency: int = Field(default=1, ge=1, le=10)

    # Pause between consecutive dispatches within one type (seconds)
    feed_delay_seconds: float = Field(default=0.0, ge=0.0)
    reddit_delay_seconds: float = Field(default=2.0, ge=0.0)
    wordpress_delay_seconds: float = Field(default=3.0, ge=0.0)

    run_deadline_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="No new source is dispatched after this many seconds into a cycle",
    )
    poll_interval_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description="Sleep between cycles when running as a service",
    )
    link_keywords: bool = Field(
        default=True,
        description="Run keyword linking on newly created content",
    )

    def concurrency(self, source_type: str) -> int:
        return {
            "feed": self.feed_concurrency,
            "reddit": self.reddit_concurrency,
            "wordpress": self.wordpress_concurrency,
        }[source_type]

    def delay(self, source_type: str) -> float:
        return {
            "feed": self.feed_delay_seconds,
            "reddit": self.reddit_delay_seconds,
            "wordpress": self.wordpress_delay_seconds,
        }[source_type]
