"""Configuration for keyword extraction and linking.

Uses Pydantic settings for environment-based configuration,
following the same pattern as other service configs in the project.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KeywordsConfig(BaseSettings):
    """
    Configuration for the keyword extractor and linker.

    All settings can be overridden via environment variables with KEYWORDS_ prefix.
    Example: KEYWORDS_MAX_KEYWORDS=10
    """

    model_config = SettingsConfigDict(
        env_prefix="KEYWORDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Extraction
    min_token_length: int = Field(
        default=3,
        ge=1,
        description="Tokens shorter than this are discarded.",
    )
    min_keyword_length: int = Field(
        default=4,
        ge=1,
        description="Minimum length of a token kept as a relevant keyword.",
    )
    min_frequency: int = Field(
        default=2,
        ge=1,
        description="Minimum in-document frequency of a relevant keyword.",
    )
    max_keywords: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum keywords linked per content item.",
    )
    context_radius: int = Field(
        default=100,
        ge=0,
        description="Characters of context kept on each side of a keyword.",
    )

    # Aggregation
    sentiment_weight: float = Field(
        default=0.1,
        gt=0.0,
        le=1.0,
        description="Weight of a new observation in the keyword sentiment EMA.",
    )

    # Cleanup
    cleanup_min_frequency: int = Field(
        default=2,
        ge=1,
        description="Keywords below this global frequency are deactivated on cleanup.",
    )
    link_retention_days: int = Field(
        default=90,
        ge=1,
        description="Keyword-content links older than this are deleted on cleanup.",
    )
    trending_min_frequency: int = Field(default=10, ge=1)
    trending_window_days: int = Field(default=7, ge=1)
