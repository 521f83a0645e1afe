"""Configuration for the sources registry."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourcesConfig(BaseSettings):
    """Settings for source scheduling state and seeding."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCES_",
        case_sensitive=False,
        extra="ignore",
    )

    disable_threshold: int = Field(
        default=5,
        ge=1,
        description="Sources with more consecutive failures than this are not scheduled",
    )
    unhealthy_threshold: int = Field(
        default=3,
        ge=0,
        description="Sources with more consecutive failures than this report as unhealthy",
    )
    error_ring_size: int = Field(
        default=10,
        ge=1,
        description="Number of recent crawl errors kept per source",
    )
    feed_interval_minutes: int = Field(default=60, ge=1)
    reddit_interval_minutes: int = Field(default=24 * 60, ge=1)
    wordpress_interval_minutes: int = Field(default=12 * 60, ge=1)
    seed_on_init: bool = Field(
        default=True,
        description="Automatically seed from JSON on first init if table is empty",
    )

    def default_interval(self, source_type: str) -> int:
        """Default crawl interval in minutes for a source type."""
        return {
            "feed": self.feed_interval_minutes,
            "reddit": self.reddit_interval_minutes,
            "wordpress": self.wordpress_interval_minutes,
        }.get(source_type, self.feed_interval_minutes)
