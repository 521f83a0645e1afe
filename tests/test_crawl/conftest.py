"""Shared fixtures for crawl tests."""

import pytest

from crypto_ingest.ingestion.schemas import FetchedPayload


class FakeFetcher:
    """Returns queued responses in order; exceptions in the queue are raised."""

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.calls: list[str] = []

    async def fetch(self, source):
        self.calls.append(source.identifier)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_fetcher() -> type[FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def rss_fetched(rss_payload: str) -> FetchedPayload:
    return FetchedPayload(
        body=rss_payload,
        url="https://example.com/feed.xml",
        content_type="application/rss+xml",
        etag='"v1"',
        last_modified="Mon, 06 Jan 2025 12:00:00 GMT",
    )
