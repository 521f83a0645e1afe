"""
Conditional fetcher for source payloads.

Builds the provider request for a source, sends its cached validators as
If-None-Match / If-Modified-Since, and returns either the payload with new
validators or NotModified. Every failure is raised as FetchError; retrying
is left to the scheduler (the source is simply due again later).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from crypto_ingest.config.settings import Settings, get_settings
from crypto_ingest.ingestion.config import FetchConfig
from crypto_ingest.ingestion.errors import FetchError
from crypto_ingest.ingestion.schemas import FetchedPayload, NotModified, SourceType
from crypto_ingest.sources.schemas import Source

logger = logging.getLogger(__name__)

REDDIT_API_BASE = "https://oauth.reddit.com"
REDDIT_PUBLIC_BASE = "https://www.reddit.com"
REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"

FEED_ACCEPT = (
    "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
    "text/xml;q=0.9, */*;q=0.8"
)


class ConditionalFetcher:
    """
    Async fetcher for Reddit listings, WordPress REST posts and RSS/Atom feeds.

    Example:
        async with ConditionalFetcher() as fetcher:
            result = await fetcher.fetch(source)
            if isinstance(result, NotModified):
                ...
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config: FetchConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings or get_settings()
        self._config = config or FetchConfig()
        self._client = client
        self._owns_client = client is None
        self._reddit_token: str | None = None

    async def __aenter__(self) -> "ConditionalFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Underlying HTTP client, created lazily outside a context manager."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def fetch(self, source: Source) -> FetchedPayload | NotModified:
        """
        Fetch the current payload of a source.

        Args:
            source: Source to fetch; its etag/last_modified are sent as validators

        Returns:
            FetchedPayload with the body and new validators, or NotModified on 304

        Raises:
            FetchError: On timeout, transport failure or error status
        """
        source_type = SourceType(source.source_type)
        if source_type == SourceType.REDDIT:
            url, params, headers = await self._reddit_request(source)
        elif source_type == SourceType.WORDPRESS:
            url, params, headers = self._wordpress_request(source)
        else:
            url, params, headers = self._feed_request(source)

        try:
            response = await self.client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise FetchError(f"Timeout fetching {url}", url=url) from e
        except httpx.RequestError as e:
            raise FetchError(f"Request to {url} failed: {e}", url=url) from e

        if response.status_code == 304:
            logger.debug(f"{source.label} not modified")
            return NotModified(
                url=url,
                etag=response.headers.get("etag", source.etag),
                last_modified=response.headers.get("last-modified", source.last_modified),
            )

        if response.status_code == 401 and source_type == SourceType.REDDIT:
            # Token expired; the next crawl requests a fresh one
            self._reddit_token = None

        if response.status_code >= 400:
            raise FetchError(
                f"HTTP {response.status_code} from {url}",
                status_code=response.status_code,
                url=url,
            )

        return FetchedPayload(
            body=response.text,
            url=str(response.url),
            content_type=response.headers.get("content-type", ""),
            etag=response.headers.get("etag"),
            last_modified=response.headers.get("last-modified"),
            status_code=response.status_code,
        )

    # ── Request builders ────────────────────────────────────────

    def _conditional_headers(self, source: Source) -> dict[str, str]:
        headers: dict[str, str] = {}
        if source.etag:
            headers["If-None-Match"] = source.etag
        if source.last_modified:
            headers["If-Modified-Since"] = source.last_modified
        return headers

    def _feed_request(self, source: Source) -> tuple[str, dict[str, Any], dict[str, str]]:
        headers = {
            "User-Agent": self._settings.http_user_agent,
            "Accept": FEED_ACCEPT,
            **self._conditional_headers(source),
        }
        return source.identifier, {}, headers

    def _wordpress_request(
        self, source: Source, now: datetime | None = None
    ) -> tuple[str, dict[str, Any], dict[str, str]]:
        now = now or datetime.now(timezone.utc)
        after = now - timedelta(days=self._config.wordpress_lookback_days)
        url = f"{source.identifier.rstrip('/')}/wp-json/wp/v2/posts"
        params = {
            "_embed": "1",
            "per_page": self._config.wordpress_per_page,
            "orderby": "date",
            "order": "desc",
            "after": after.strftime("%Y-%m-%dT%H:%M:%S"),
        }
        headers = {
            "User-Agent": self._settings.http_user_agent,
            "Accept": "application/json",
            **self._conditional_headers(source),
        }
        api_key = source.metadata.get("api_key")
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return url, params, headers

    async def _reddit_request(
        self, source: Source
    ) -> tuple[str, dict[str, Any], dict[str, str]]:
        listing = source.metadata.get("listing", self._config.reddit_listing)
        params = {"limit": source.metadata.get("limit", self._config.reddit_limit)}
        headers = {"User-Agent": self._settings.reddit_user_agent}
        subreddit = source.identifier.removeprefix("r/").strip("/")

        if self._settings.reddit_configured:
            token = await self._get_reddit_token()
            headers["Authorization"] = f"Bearer {token}"
            return f"{REDDIT_API_BASE}/r/{subreddit}/{listing}", params, headers

        return f"{REDDIT_PUBLIC_BASE}/r/{subreddit}/{listing}.json", params, headers

    async def _get_reddit_token(self) -> str:
        """Get (and cache) an app-only OAuth token from Reddit."""
        if self._reddit_token:
            return self._reddit_token

        try:
            response = await self.client.post(
                REDDIT_TOKEN_URL,
                auth=(self._settings.reddit_client_id, self._settings.reddit_client_secret),
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self._settings.reddit_user_agent},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Reddit token request failed: {e.response.status_code}",
                status_code=e.response.status_code,
                url=REDDIT_TOKEN_URL,
            ) from e
        except httpx.RequestError as e:
            raise FetchError(f"Reddit token request failed: {e}", url=REDDIT_TOKEN_URL) from e

        try:
            body = response.json()
        except ValueError as e:
            raise FetchError(
                "Reddit token response was not JSON",
                status_code=response.status_code,
                url=REDDIT_TOKEN_URL,
            ) from e

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise FetchError("Reddit token response had no access_token", url=REDDIT_TOKEN_URL)
        self._reddit_token = token
        return token
