"""Tests for feed discovery helpers."""

import httpx
import pytest
import respx

from crypto_ingest.ingestion.discovery import (
    discover_feed_urls,
    extract_feed_links,
    looks_like_feed,
    validate_feed_url,
)


class TestExtractFeedLinks:
    """Tests for <link> tag discovery."""

    def test_relative_and_absolute(self) -> None:
        html = """<head>
            <link rel="alternate" type="application/rss+xml" href="/feed/">
            <link rel="alternate" type="application/atom+xml" href="https://cdn.example/atom">
            <link rel="icon" href="/favicon.ico">
        </head>"""

        urls = extract_feed_links(html, "https://site.example/blog/")

        assert urls == ["https://site.example/feed/", "https://cdn.example/atom"]

    def test_no_links(self) -> None:
        assert extract_feed_links("<html></html>", "https://site.example") == []


class TestLooksLikeFeed:
    """Tests for content-type sniffing."""

    @pytest.mark.parametrize(
        "content_type,expected",
        [
            ("application/rss+xml; charset=utf-8", True),
            ("application/atom+xml", True),
            ("text/xml", True),
            ("text/html", False),
            ("", False),
        ],
    )
    def test_content_types(self, content_type: str, expected: bool) -> None:
        assert looks_like_feed(content_type) is expected


class TestDiscoverFeedUrls:
    """Tests for full discovery against a mocked site."""

    @pytest.mark.asyncio
    async def test_combines_links_and_common_paths(self) -> None:
        html = '<link type="application/rss+xml" href="/feed">'

        with respx.mock:
            respx.get("https://site.example/").mock(return_value=httpx.Response(200, text=html))
            respx.head("https://site.example/feed").mock(
                return_value=httpx.Response(200, headers={"content-type": "application/rss+xml"})
            )
            respx.head("https://site.example/atom.xml").mock(
                return_value=httpx.Response(200, headers={"content-type": "application/atom+xml"})
            )
            respx.head(host="site.example").mock(return_value=httpx.Response(404))

            async with httpx.AsyncClient() as client:
                urls = await discover_feed_urls(client, "https://site.example/", "ua")

        # /feed found twice, reported once in discovery order
        assert urls == ["https://site.example/feed", "https://site.example/atom.xml"]

    @pytest.mark.asyncio
    async def test_unreachable_site(self) -> None:
        with respx.mock:
            respx.get("https://down.example/").mock(side_effect=httpx.ConnectError("down"))
            async with httpx.AsyncClient() as client:
                urls = await discover_feed_urls(client, "https://down.example/", "ua")

        assert urls == []

    @pytest.mark.asyncio
    async def test_validate_rejects_html(self) -> None:
        with respx.mock:
            respx.head("https://site.example/rss").mock(
                return_value=httpx.Response(200, headers={"content-type": "text/html"})
            )
            async with httpx.AsyncClient() as client:
                assert not await validate_feed_url(client, "https://site.example/rss", "ua")
