"""Tests for the format normalizer."""

import json
from datetime import datetime, timezone

import pytest

from crypto_ingest.ingestion.errors import FormatError
from crypto_ingest.ingestion.normalizer import (
    clean_reddit_markdown,
    detect_format,
    html_to_text,
    normalize,
)
from crypto_ingest.ingestion.schemas import PayloadFormat, SourceType


class TestDetectFormat:
    """Tests for payload sniffing."""

    def test_rss(self, rss_payload: str) -> None:
        assert detect_format(rss_payload) == PayloadFormat.RSS

    def test_atom(self, atom_payload: str) -> None:
        assert detect_format(atom_payload) == PayloadFormat.ATOM

    def test_reddit(self, reddit_listing: str) -> None:
        assert detect_format(reddit_listing) == PayloadFormat.REDDIT_LISTING

    def test_wordpress(self, wordpress_posts: str) -> None:
        assert detect_format(wordpress_posts) == PayloadFormat.WORDPRESS_POSTS

    def test_other_json_rejected(self) -> None:
        with pytest.raises(FormatError):
            detect_format(json.dumps({"status": "ok"}))

    def test_malformed_json_rejected(self) -> None:
        with pytest.raises(FormatError):
            detect_format('{"kind": "Listing", ')

    def test_html_rejected(self) -> None:
        with pytest.raises(FormatError):
            detect_format("<html><body>Just a page</body></html>")

    def test_empty_rejected(self) -> None:
        with pytest.raises(FormatError):
            detect_format("")


class TestFeedNormalization:
    """Tests for RSS and Atom items."""

    def test_rss_and_atom_yield_six_items(
        self, rss_payload: str, atom_payload: str
    ) -> None:
        rss = normalize(rss_payload, SourceType.FEED, base_url="https://cryptodaily.example/rss")
        atom = normalize(atom_payload, SourceType.FEED, base_url="https://chainnotes.example/atom")

        items = rss.items + atom.items
        assert len(items) == 6
        assert all(i.external_id for i in items)
        assert all(i.title for i in items)
        assert all(i.published_at.tzinfo is not None for i in items)
        assert len({i.external_id for i in items}) == 6

    def test_rss_fields(self, rss_payload: str) -> None:
        feed = normalize(rss_payload, SourceType.FEED)

        first = feed.items[0]
        assert first.external_id == "https://cryptodaily.example/?p=101"
        assert first.url == "https://cryptodaily.example/btc-resistance"
        assert first.body == "Bitcoin price surges past resistance."
        assert first.tags == ["Markets"]
        assert first.published_at == datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc)
        assert feed.metadata["title"] == "Crypto Daily"
        assert feed.metadata["language"] == "en"
        assert feed.warnings == 0

    def test_items_keep_payload_order(self, rss_payload: str) -> None:
        feed = normalize(rss_payload, SourceType.FEED)
        assert [i.external_id[-3:] for i in feed.items] == ["101", "102", "103"]

    def test_atom_prefers_content_and_html_link(self, atom_payload: str) -> None:
        feed = normalize(atom_payload, SourceType.FEED)

        first = feed.items[0]
        assert first.url == "https://chainnotes.example/solana"
        assert first.body == "Solana validators roll out a new client."
        assert first.author == "Alice"
        assert feed.items[1].body == "DeFi lending protocols post record volumes."

    def test_missing_guid_falls_back_to_link(self) -> None:
        payload = """<rss version="2.0"><channel><title>T</title>
            <item><title>No guid</title><link>https://x.example/a</link></item>
        </channel></rss>"""

        feed = normalize(payload, SourceType.FEED)

        assert feed.items[0].external_id == "https://x.example/a"
        assert not feed.items[0].synthetic_id

    def test_bare_guid_scoped_to_feed(self) -> None:
        payload = """<rss version="2.0"><channel><title>T</title>
            <item><title>Post</title><guid isPermaLink="false">123</guid></item>
        </channel></rss>"""

        first = normalize(payload, SourceType.FEED, base_url="https://a.example/rss")
        second = normalize(payload, SourceType.FEED, base_url="https://b.example/rss")

        assert first.items[0].external_id == "https://a.example/rss#123"
        assert second.items[0].external_id == "https://b.example/rss#123"
        assert not first.items[0].synthetic_id

    def test_missing_guid_and_link_gets_synthetic_id(self) -> None:
        payload = """<rss version="2.0"><channel><title>T</title>
            <item><title>Orphan</title><description>Body</description></item>
        </channel></rss>"""

        feed = normalize(payload, SourceType.FEED, base_url="https://x.example/rss")

        item = feed.items[0]
        assert item.synthetic_id
        assert item.external_id.startswith("https://x.example/rss#")
        assert feed.synthetic_ids == 1

    def test_unparseable_date_falls_back_to_now(self) -> None:
        now = datetime(2025, 2, 1, tzinfo=timezone.utc)
        payload = """<rss version="2.0"><channel><title>T</title>
            <item><title>Bad date</title><guid>g1</guid><pubDate>yesterday-ish</pubDate></item>
        </channel></rss>"""

        feed = normalize(payload, SourceType.FEED, now=now)

        assert feed.items[0].published_at == now
        assert feed.items[0].date_fallback
        assert feed.date_fallbacks == 1

    def test_empty_item_dropped(self) -> None:
        payload = """<rss version="2.0"><channel><title>T</title>
            <item><guid>empty</guid></item>
            <item><title>Kept</title><guid>kept</guid></item>
        </channel></rss>"""

        feed = normalize(payload, SourceType.FEED)

        assert [i.external_id for i in feed.items] == ["kept"]
        assert feed.dropped == 1


class TestRedditNormalization:
    """Tests for Reddit listings."""

    def test_skips_stickied_and_cleans_text(self, reddit_listing: str) -> None:
        feed = normalize(reddit_listing, SourceType.REDDIT)

        assert [i.external_id for i in feed.items] == ["abc123", "ghi789"]
        first = feed.items[0]
        assert first.body == "Huge inflows today. source"
        assert first.tags == ["GENERAL-NEWS"]
        assert first.author == "satoshi_fan"
        assert first.published_at == datetime.fromtimestamp(1736157600, tz=timezone.utc)

    def test_removed_selftext_blanked(self, reddit_listing: str) -> None:
        feed = normalize(reddit_listing, SourceType.REDDIT)
        assert feed.items[1].body == ""
        assert feed.items[1].title == "Is staking worth it?"


class TestWordPressNormalization:
    """Tests for WordPress REST posts."""

    def test_fields(self, wordpress_posts: str) -> None:
        feed = normalize(wordpress_posts, SourceType.WORDPRESS, base_url="https://wpnews.example")

        first = feed.items[0]
        assert first.external_id == "https://wpnews.example/?p=501"
        assert first.title == "Bitcoin mining difficulty – new high"
        assert first.body == "Mining difficulty reached a new high."
        assert first.summary == "Difficulty at record."
        assert first.author == "Bob"
        assert first.tags == ["Mining", "Bitcoin"]
        assert first.published_at == datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)

    def test_fallbacks(self, wordpress_posts: str) -> None:
        now = datetime(2025, 1, 7, tzinfo=timezone.utc)
        feed = normalize(
            wordpress_posts, SourceType.WORDPRESS, base_url="https://wpnews.example/", now=now
        )

        second = feed.items[1]
        assert second.url == "https://wpnews.example/?p=502"
        assert second.author == "Anonymous"
        assert second.body == "The week in crypto."
        assert second.published_at == now
        assert feed.date_fallbacks == 1

    def test_post_ids_scoped_to_site(self, wordpress_posts: str) -> None:
        first = normalize(wordpress_posts, SourceType.WORDPRESS, base_url="https://a.example")
        second = normalize(wordpress_posts, SourceType.WORDPRESS, base_url="https://b.example")

        assert [i.external_id for i in first.items] == [
            "https://a.example/?p=501",
            "https://a.example/?p=502",
        ]
        assert {i.external_id for i in first.items}.isdisjoint(
            i.external_id for i in second.items
        )

    def test_non_string_date_falls_back(self) -> None:
        now = datetime(2025, 1, 7, tzinfo=timezone.utc)
        payload = json.dumps([{"id": 9, "date_gmt": 1700000000, "title": "Numeric date"}])

        feed = normalize(payload, SourceType.WORDPRESS, base_url="https://wp.example", now=now)

        assert feed.items[0].published_at == now
        assert feed.date_fallbacks == 1


class TestFormatMismatch:
    """A source type only accepts the formats it produces."""

    def test_feed_source_rejects_reddit_payload(self, reddit_listing: str) -> None:
        with pytest.raises(FormatError):
            normalize(reddit_listing, SourceType.FEED)

    def test_wordpress_source_rejects_rss(self, rss_payload: str) -> None:
        with pytest.raises(FormatError):
            normalize(rss_payload, "wordpress")


class TestMalformedPayloads:
    """Broken documents fail as FormatError; broken items are dropped."""

    @pytest.mark.parametrize(
        "listing",
        [
            {"kind": "Listing", "data": None},
            {"kind": "Listing", "data": {"children": "none"}},
            {"kind": "Listing"},
        ],
    )
    def test_listing_without_children_rejected(self, listing: dict) -> None:
        with pytest.raises(FormatError):
            normalize(json.dumps(listing), SourceType.REDDIT)

    def test_reddit_post_with_wrong_types_dropped(self) -> None:
        listing = {
            "kind": "Listing",
            "data": {
                "children": [
                    {"kind": "t3", "data": {"id": "bad1", "title": 5}},
                    {"kind": "t3", "data": None},
                    {"kind": "t3", "data": {"id": "ok1", "title": "Ether gas fees fall"}},
                ]
            },
        }

        feed = normalize(json.dumps(listing), SourceType.REDDIT)

        assert [i.external_id for i in feed.items] == ["ok1"]
        assert feed.dropped == 2

    def test_wordpress_post_with_wrong_types_dropped(self) -> None:
        posts = [
            {"id": 1, "title": "Broken terms", "_embedded": {"wp:term": [[5]]}},
            {"id": 2, "title": "Fine post"},
        ]

        feed = normalize(json.dumps(posts), SourceType.WORDPRESS, base_url="https://wp.example")

        assert [i.title for i in feed.items] == ["Fine post"]
        assert feed.dropped == 1


class TestTextHelpers:
    """Tests for HTML and markdown cleanup."""

    def test_html_to_text_strips_scripts(self) -> None:
        html = "<div><script>alert(1)</script><p>Hello&nbsp;<b>world</b></p></div>"
        assert html_to_text(html) == "Hello world"

    def test_html_to_text_empty(self) -> None:
        assert html_to_text(None) == ""

    def test_reddit_markdown(self) -> None:
        text = "# Title\n> quoted\n~~old~~ *new* `code` [link](https://x.example)"
        assert clean_reddit_markdown(text) == "Title quoted old new link"
