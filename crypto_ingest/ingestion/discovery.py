"""
RSS/Atom feed discovery for a website.

Looks for <link rel="alternate" type="application/rss+xml|atom+xml"> tags in
the site's HTML, then probes a handful of conventional feed endpoints with
HEAD requests. Candidates are returned de-duplicated, in discovery order.
"""

import logging
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

FEED_LINK_TYPES = ("application/rss+xml", "application/atom+xml")
COMMON_FEED_PATHS = ("/rss", "/feed", "/feeds", "/atom.xml", "/rss.xml", "/index.xml")


def extract_feed_links(page_html: str, base_url: str) -> list[str]:
    """Absolute feed URLs advertised by <link> tags in an HTML page."""
    soup = BeautifulSoup(page_html, "html.parser")
    urls: list[str] = []
    for link in soup.find_all("link"):
        link_type = (link.get("type") or "").lower().strip()
        href = link.get("href")
        if link_type in FEED_LINK_TYPES and href:
            urls.append(urljoin(base_url, href.strip()))
    return urls


def looks_like_feed(content_type: str) -> bool:
    content_type = content_type.lower()
    return any(marker in content_type for marker in ("xml", "rss", "atom"))


async def validate_feed_url(
    client: httpx.AsyncClient,
    url: str,
    user_agent: str,
) -> bool:
    """HEAD the URL and check that its content type is a feed type."""
    try:
        response = await client.head(url, headers={"User-Agent": user_agent})
    except httpx.HTTPError as e:
        logger.debug(f"Feed probe failed for {url}: {e}")
        return False
    if response.status_code >= 400:
        return False
    return looks_like_feed(response.headers.get("content-type", ""))


async def discover_feed_urls(
    client: httpx.AsyncClient,
    website_url: str,
    user_agent: str,
) -> list[str]:
    """
    Discover RSS/Atom feed URLs for a website.

    Args:
        client: HTTP client to use
        website_url: Home page of the site
        user_agent: User-Agent header value

    Returns:
        De-duplicated absolute feed URLs (empty when the site is unreachable)
    """
    candidates: list[str] = []

    try:
        response = await client.get(website_url, headers={"User-Agent": user_agent})
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Failed to discover feeds for {website_url}: {e}")
        return []

    candidates.extend(extract_feed_links(response.text, str(response.url)))

    for path in COMMON_FEED_PATHS:
        url = urljoin(website_url, path)
        if await validate_feed_url(client, url, user_agent):
            candidates.append(url)

    return list(dict.fromkeys(candidates))
