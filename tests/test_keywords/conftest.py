"""Shared fixtures for keyword tests."""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def keyword_row() -> dict:
    """A dict mimicking an asyncpg Record for a keyword."""
    return {
        "id": 11,
        "normalized": "bitcoin",
        "category": "crypto",
        "frequency": 3,
        "average_sentiment": 0.2,
        "relevance_score": 0.081,
        "is_active": True,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 6, tzinfo=timezone.utc),
    }


@pytest.fixture
def link_row() -> dict:
    """A dict mimicking an asyncpg Record for a keyword-content link."""
    return {
        "id": 21,
        "keyword_id": 11,
        "content_id": 5,
        "content_type": "feed",
        "frequency": 4,
        "relevance_score": 0.75,
        "sentiment_score": None,
        "context": "...bitcoin rallies...",
        "created_at": datetime(2025, 1, 6, tzinfo=timezone.utc),
        "normalized": "bitcoin",
    }
