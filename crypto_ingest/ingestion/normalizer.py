"""
Format normalizer: raw payload -> CanonicalItem list.

Four payload formats are understood:
- RSS 0.9x/1.0/2.0 and Atom feeds (parsed with feedparser)
- Reddit listing JSON
- WordPress REST API post arrays

The format is sniffed from the payload itself and checked against what the
source type expects. Anything else raises FormatError. Items are cleaned of
HTML and markdown, and every fallback taken (synthetic identifier, date
defaulting to now, dropped empty or malformed item) is counted on the result.
Feed GUIDs that are not URIs and WordPress post ids are scoped to their
source so two sources cannot claim the same identifier.
"""

import calendar
import html
import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import feedparser
from bs4 import BeautifulSoup

from crypto_ingest.ingestion.errors import FormatError
from crypto_ingest.ingestion.schemas import (
    CanonicalItem,
    NormalizedFeed,
    PayloadFormat,
    SourceType,
)

logger = logging.getLogger(__name__)

EXPECTED_FORMATS: dict[SourceType, frozenset[PayloadFormat]] = {
    SourceType.FEED: frozenset({PayloadFormat.RSS, PayloadFormat.ATOM}),
    SourceType.REDDIT: frozenset({PayloadFormat.REDDIT_LISTING}),
    SourceType.WORDPRESS: frozenset({PayloadFormat.WORDPRESS_POSTS}),
}

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Raised by item builders on unexpected field types (pydantic errors are ValueErrors)
_MALFORMED_ITEM = (AttributeError, KeyError, TypeError, ValueError)


# ── Text cleanup ────────────────────────────────────────────


def clean_text(text: str) -> str:
    """Collapse whitespace and strip control characters."""
    text = " ".join(text.split())
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()


def html_to_text(content: str | None) -> str:
    """
    Extract clean text from HTML content.

    Args:
        content: Raw HTML (or already plain) string

    Returns:
        Plain text with entities decoded and whitespace collapsed
    """
    if not content:
        return ""

    soup = BeautifulSoup(content, "html.parser")
    for element in soup(["script", "style", "nav", "footer", "header"]):
        element.decompose()

    text = soup.get_text(separator=" ")
    text = html.unescape(text)
    return clean_text(text)


def clean_reddit_markdown(text: str) -> str:
    """Flatten Reddit markdown to plain text."""
    text = html.unescape(text)

    # Blockquotes
    text = re.sub(r"^>+\s*", "", text, flags=re.MULTILINE)
    # Bold/italic
    text = re.sub(r"\*{1,2}([^*]+)\*{1,2}", r"\1", text)
    text = re.sub(r"_{1,2}([^_]+)_{1,2}", r"\1", text)
    # Links keep their text
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    # Code blocks and inline code
    text = re.sub(r"```[^`]*```", "", text)
    text = re.sub(r"`[^`]+`", "", text)
    # Strikethrough
    text = re.sub(r"~~([^~]+)~~", r"\1", text)
    # Headings and horizontal rules
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^[-*_]{3,}\s*$", "", text, flags=re.MULTILINE)

    return clean_text(text)


# ── Format detection ────────────────────────────────────────


def _load_json(body: str) -> Any | None:
    stripped = body.lstrip()
    if not stripped or stripped[0] not in "{[":
        return None
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as e:
        raise FormatError(f"Malformed JSON payload: {e}") from e


def _detect(body: str) -> tuple[PayloadFormat, Any]:
    """Sniff the payload format, returning it with the parsed document."""
    data = _load_json(body)
    if data is not None:
        if isinstance(data, dict) and data.get("kind") == "Listing":
            return PayloadFormat.REDDIT_LISTING, data
        if isinstance(data, list) and all(isinstance(p, dict) for p in data):
            return PayloadFormat.WORDPRESS_POSTS, data
        raise FormatError("JSON payload is neither a Reddit listing nor a WordPress post array")

    parsed = feedparser.parse(body)
    version = parsed.get("version") or ""
    if version.startswith("rss"):
        return PayloadFormat.RSS, parsed
    if version.startswith("atom"):
        return PayloadFormat.ATOM, parsed

    reason = parsed.get("bozo_exception") or "unrecognised document"
    raise FormatError(f"Unsupported payload format: {reason}")


def detect_format(body: str) -> PayloadFormat:
    """Return the payload format of ``body`` or raise FormatError."""
    return _detect(body)[0]


# ── Normalization ───────────────────────────────────────────


def normalize(
    body: str,
    source_type: SourceType | str | None = None,
    base_url: str | None = None,
    now: datetime | None = None,
) -> NormalizedFeed:
    """
    Normalize a raw payload into canonical items.

    Args:
        body: Raw response body
        source_type: Kind of source the payload came from; the detected
            format must be one that source type produces
        base_url: Source locator, used as a link fallback
        now: Timestamp used when an item's publish date is unusable

    Returns:
        NormalizedFeed with items in payload order and data-quality counters

    Raises:
        FormatError: If the payload is not a supported format or its
            overall structure is malformed. Malformed single items are
            dropped and counted instead.
    """
    now = now or datetime.now(timezone.utc)
    fmt, document = _detect(body)

    if source_type is not None:
        expected = EXPECTED_FORMATS[SourceType(source_type)]
        if fmt not in expected:
            raise FormatError(
                f"{SourceType(source_type).value} source returned a {fmt.value} payload"
            )

    result = NormalizedFeed(format=fmt)
    try:
        if fmt == PayloadFormat.REDDIT_LISTING:
            _normalize_reddit(document, result, now)
        elif fmt == PayloadFormat.WORDPRESS_POSTS:
            _normalize_wordpress(document, result, base_url, now)
        else:
            _normalize_feed(document, result, base_url, now)
    except _MALFORMED_ITEM as e:
        raise FormatError(f"Malformed {fmt.value} payload: {e}") from e

    if result.warnings:
        logger.warning(
            f"Data quality: {fmt.value} payload from {base_url or 'unknown'} "
            f"dropped={result.dropped} synthetic_ids={result.synthetic_ids} "
            f"date_fallbacks={result.date_fallbacks}"
        )
    return result


def _accept(result: NormalizedFeed, item: CanonicalItem | None) -> None:
    """Append an item, or count it as dropped when it carries no content."""
    if item is None or not (item.title or item.body):
        result.dropped += 1
        return
    if item.synthetic_id:
        result.synthetic_ids += 1
    if item.date_fallback:
        result.date_fallbacks += 1
    result.items.append(item)


def _synthetic_id(base_url: str | None) -> str:
    return f"{base_url or 'item'}#{uuid.uuid4().hex}"


def _scoped_guid(guid: str | None, base_url: str | None) -> str | None:
    """Prefix a bare GUID such as "123" with the feed URL; URIs stay as they are."""
    if not guid or not base_url or urlsplit(guid).scheme:
        return guid
    return f"{base_url}#{guid}"


def _drop_malformed(result: NormalizedFeed, error: Exception) -> None:
    logger.debug(f"Dropping malformed item: {type(error).__name__}: {error}")
    result.dropped += 1


# ── RSS / Atom ──────────────────────────────────────────────


def _entry_timestamp(entry: dict[str, Any]) -> datetime | None:
    """Publish timestamp of a feedparser entry, None when unusable."""
    for field in ("published_parsed", "updated_parsed", "created_parsed"):
        value = entry.get(field)
        if value:
            try:
                return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
            except (OverflowError, ValueError, TypeError):
                continue
    return None


def _entry_link(entry: dict[str, Any]) -> str | None:
    """Prefer an HTML alternate link, then whatever feedparser chose."""
    for link in entry.get("links", []):
        if link.get("type") == "text/html" and link.get("href"):
            return link["href"]
    return entry.get("link") or None


def _entry_body(entry: dict[str, Any]) -> str:
    """Full content first, then summary, then description."""
    for content in entry.get("content", []):
        value = content.get("value")
        if value:
            return value
    return entry.get("summary") or entry.get("description") or ""


def _normalize_feed(
    parsed: Any,
    result: NormalizedFeed,
    base_url: str | None,
    now: datetime,
) -> None:
    feed = parsed.get("feed", {})
    result.metadata = {
        "title": clean_text(feed.get("title", "")),
        "description": html_to_text(feed.get("subtitle") or feed.get("description")),
        "link": feed.get("link"),
        "language": feed.get("language"),
    }

    for entry in parsed.get("entries", []):
        try:
            item = _feed_item(entry, base_url, now)
        except _MALFORMED_ITEM as e:
            _drop_malformed(result, e)
            continue
        _accept(result, item)


def _feed_item(entry: dict[str, Any], base_url: str | None, now: datetime) -> CanonicalItem:
    link = _entry_link(entry)
    external_id = _scoped_guid(entry.get("id"), base_url) or link
    synthetic = not external_id
    if synthetic:
        external_id = _synthetic_id(base_url)

    published = _entry_timestamp(entry)
    summary = html_to_text(entry.get("summary")) or None
    tags = [t.get("term") for t in entry.get("tags", []) if t.get("term")]

    return CanonicalItem(
        external_id=external_id,
        title=html_to_text(entry.get("title")),
        body=html_to_text(_entry_body(entry)),
        summary=summary,
        url=link or base_url,
        author=entry.get("author") or None,
        tags=tags,
        published_at=published or now,
        synthetic_id=synthetic,
        date_fallback=published is None,
    )


# ── Reddit ──────────────────────────────────────────────────


def _normalize_reddit(listing: dict[str, Any], result: NormalizedFeed, now: datetime) -> None:
    data = listing.get("data")
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        raise FormatError("Reddit listing has no children array")

    for child in children:
        post = child.get("data") if isinstance(child, dict) else None
        if not isinstance(post, dict):
            result.dropped += 1
            continue

        # Skip pinned and moderated posts
        if post.get("stickied") or post.get("removed_by_category"):
            continue

        try:
            item = _reddit_item(post, now)
        except _MALFORMED_ITEM as e:
            _drop_malformed(result, e)
            continue
        _accept(result, item)


def _reddit_item(post: dict[str, Any], now: datetime) -> CanonicalItem:
    permalink = post.get("permalink")
    link = post.get("url") or (f"https://www.reddit.com{permalink}" if permalink else None)
    external_id = post.get("id") or post.get("name") or link
    synthetic = not external_id
    if synthetic:
        external_id = _synthetic_id(permalink)

    published = None
    created = post.get("created_utc")
    if created is not None:
        try:
            published = datetime.fromtimestamp(float(created), tz=timezone.utc)
        except (OverflowError, ValueError, TypeError):
            published = None

    selftext = post.get("selftext") or ""
    if selftext in ("[removed]", "[deleted]"):
        selftext = ""

    tags = [post["link_flair_text"]] if post.get("link_flair_text") else []

    return CanonicalItem(
        external_id=str(external_id),
        title=clean_text(html.unescape(post.get("title") or "")),
        body=clean_reddit_markdown(selftext),
        url=link,
        author=post.get("author") or None,
        tags=tags,
        published_at=published or now,
        synthetic_id=synthetic,
        date_fallback=published is None,
    )


# ── WordPress ───────────────────────────────────────────────


def _rendered(post: dict[str, Any], field: str) -> str:
    value = post.get(field)
    if isinstance(value, dict):
        return value.get("rendered") or ""
    return value or ""


def _parse_wp_date(post: dict[str, Any]) -> datetime | None:
    for field, assume_utc in (("date_gmt", True), ("date", False)):
        value = post.get(field)
        if not value or not isinstance(value, str):
            continue
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            continue
        if parsed.tzinfo is None:
            # WordPress "date" is site-local; without an offset UTC is the best guess
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _wp_terms(post: dict[str, Any]) -> list[str]:
    embedded = post.get("_embedded") or {}
    terms: list[str] = []
    for group in embedded.get("wp:term", []) or []:
        for term in group or []:
            if term.get("taxonomy") in ("category", "post_tag") and term.get("name"):
                terms.append(html.unescape(term["name"]))
    return terms


def _wp_author(post: dict[str, Any]) -> str:
    authors = (post.get("_embedded") or {}).get("author") or []
    if authors and isinstance(authors[0], dict) and authors[0].get("name"):
        return authors[0]["name"]
    return "Anonymous"


def _normalize_wordpress(
    posts: list[dict[str, Any]],
    result: NormalizedFeed,
    base_url: str | None,
    now: datetime,
) -> None:
    site = (base_url or "").rstrip("/")
    for post in posts:
        try:
            item = _wordpress_item(post, site, now)
        except _MALFORMED_ITEM as e:
            _drop_malformed(result, e)
            continue
        _accept(result, item)


def _wordpress_item(post: dict[str, Any], site: str, now: datetime) -> CanonicalItem:
    post_id = post.get("id")
    shortlink = f"{site}/?p={post_id}" if site and post_id is not None else None
    link = post.get("link") or shortlink
    # Post ids are only unique within one site
    external_id = shortlink or (str(post_id) if post_id is not None else link)
    synthetic = not external_id
    if synthetic:
        external_id = _synthetic_id(site)

    published = _parse_wp_date(post)
    excerpt = html_to_text(_rendered(post, "excerpt")) or None
    body = html_to_text(_rendered(post, "content")) or excerpt or ""

    return CanonicalItem(
        external_id=external_id,
        title=html_to_text(_rendered(post, "title")),
        body=body,
        summary=excerpt,
        url=link,
        author=_wp_author(post),
        tags=_wp_terms(post),
        published_at=published or now,
        synthetic_id=synthetic,
        date_fallback=published is None,
    )
