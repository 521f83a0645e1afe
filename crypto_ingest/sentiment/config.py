"""Configuration for sentiment enrichment."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SentimentConfig(BaseSettings):
    """
    Settings for the sentiment enrichment worker.

    Settings can be overridden via environment variables prefixed with SENTIMENT_.

    Example:
        SENTIMENT_BATCH_SIZE=100
        SENTIMENT_NEUTRAL_BAND=0.15
    """

    model_config = SettingsConfigDict(
        env_prefix="SENTIMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Content items analyzed per enrichment run",
    )
    neutral_band: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Scores with absolute value below this are labelled neutral",
    )
    emoji_max_modifier: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Cap on the total emoji contribution to a score",
    )
    max_keywords: int = Field(
        default=10,
        ge=0,
        description="Sentiment-bearing terms reported per result",
    )
