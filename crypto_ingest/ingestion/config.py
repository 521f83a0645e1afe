"""Configuration for outbound fetching of source payloads."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetchConfig(BaseSettings):
    """
    Provider-specific fetch settings.

    All settings can be overridden via environment variables with FETCH_ prefix.
    Example: FETCH_WORDPRESS_LOOKBACK_DAYS=3
    """

    model_config = SettingsConfigDict(
        env_prefix="FETCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    reddit_listing: str = Field(
        default="hot",
        description="Subreddit listing to read (hot, new, top, rising)",
    )
    reddit_limit: int = Field(default=100, ge=1, le=100)
    wordpress_per_page: int = Field(default=100, ge=1, le=100)
    wordpress_lookback_days: int = Field(
        default=7,
        ge=1,
        description="Only posts published within this many days are requested",
    )
