"""Shared fixtures for sources tests."""

from datetime import datetime, timezone

import pytest

from crypto_ingest.sources.schemas import Source


@pytest.fixture
def sample_source() -> Source:
    """A sample Source for testing."""
    return Source(
        source_type="reddit",
        identifier="CryptoCurrency",
        display_name="r/CryptoCurrency",
        description="The leading crypto community",
        crawl_interval_minutes=1440,
        metadata={"listing": "hot"},
    )


@pytest.fixture
def sample_db_row() -> dict:
    """A dict mimicking an asyncpg Record for a source."""
    return {
        "id": 7,
        "source_type": "feed",
        "identifier": "https://www.coindesk.com/arc/outboundfeeds/rss/",
        "display_name": "CoinDesk",
        "description": "Crypto news",
        "is_active": True,
        "crawl_interval_minutes": 60,
        "last_crawled_at": datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc),
        "last_successful_crawl_at": datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc),
        "consecutive_failures": 0,
        "total_items_crawled": 42,
        "average_sentiment": 0.12,
        "etag": '"abc"',
        "last_modified": "Mon, 06 Jan 2025 10:00:00 GMT",
        "crawl_errors": '[{"timestamp": "2025-01-05T10:00:00+00:00", "message": "HTTP 503"}]',
        "metadata": '{"category": "news"}',
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 6, tzinfo=timezone.utc),
    }
