"""Tests for the sentiment enrichment worker."""

from unittest.mock import AsyncMock

import pytest

from crypto_ingest.content.schemas import ContentItem
from crypto_ingest.keywords.schemas import KeywordLink
from crypto_ingest.sentiment.analyzer import LexiconSentimentAnalyzer, SentimentResult
from crypto_ingest.sentiment.config import SentimentConfig
from crypto_ingest.sentiment.enricher import SentimentEnricher


def _item(id: int, source_id: int | None, title: str) -> ContentItem:
    return ContentItem(
        id=id, content_type="feed", external_id=f"ext-{id}", source_id=source_id, title=title
    )


def _link(keyword_id: int, content_id: int) -> KeywordLink:
    return KeywordLink(
        keyword_id=keyword_id, content_id=content_id, content_type="feed",
        frequency=2, relevance_score=0.5,
    )


@pytest.fixture
def repos():
    content = AsyncMock()
    keywords = AsyncMock()
    sources = AsyncMock()
    keywords.links_for_content.return_value = []
    return content, keywords, sources


@pytest.fixture
def build(repos, metrics):
    content, keywords, sources = repos

    def _build(analyzer=None, config=None):
        return SentimentEnricher(
            content, keywords, sources,
            analyzer or LexiconSentimentAnalyzer(),
            config=config,
            metrics=metrics,
        )

    return _build


class TestRunOnce:
    """Tests for one enrichment batch."""

    @pytest.mark.asyncio
    async def test_scores_and_propagates(self, build, repos) -> None:
        content, keywords, sources = repos
        content.list_unanalyzed.return_value = [
            _item(1, 7, "Bitcoin rallies"),
            _item(2, 8, "Exchange hacked"),
        ]
        keywords.links_for_content.side_effect = lambda cid, ctype: (
            [_link(11, cid), _link(12, cid)] if cid == 1 else []
        )

        stats = await build().run_once()

        assert stats["total"] == 2
        assert stats["processed"] == 2
        assert stats["errors"] == 0
        assert stats["keywords_updated"] == 2
        assert stats["sources_refreshed"] == 2

        first = content.mark_analyzed.await_args_list[0][0]
        assert first[0] == 1
        assert first[2] == "positive"
        second = content.mark_analyzed.await_args_list[1][0]
        assert second[2] == "negative"

        score = first[1]
        keywords.apply_sentiment.assert_any_await(11, score, 0.1)
        keywords.apply_sentiment.assert_any_await(12, score, 0.1)
        keywords.set_content_sentiment.assert_awaited_once_with(1, "feed", score)
        sources.refresh_average_sentiment.assert_any_await(7)
        sources.refresh_average_sentiment.assert_any_await(8)

    @pytest.mark.asyncio
    async def test_errors_counted_per_item(self, build, repos) -> None:
        content, _, sources = repos
        content.list_unanalyzed.return_value = [
            _item(1, 7, "fails"),
            _item(2, 8, "works"),
        ]
        analyzer = AsyncMock()
        analyzer.analyze.side_effect = [
            RuntimeError("model unavailable"),
            SentimentResult(score=0.2, label="positive", confidence=0.5),
        ]

        stats = await build(analyzer=analyzer).run_once()

        assert stats["processed"] == 1
        assert stats["errors"] == 1
        content.mark_analyzed.assert_awaited_once_with(2, 0.2, "positive", 0.5)
        sources.refresh_average_sentiment.assert_awaited_once_with(8)

    @pytest.mark.asyncio
    async def test_batch_size(self, build, repos) -> None:
        content, _, _ = repos
        content.list_unanalyzed.return_value = []

        await build(config=SentimentConfig(batch_size=25)).run_once()
        content.list_unanalyzed.assert_awaited_with(25)

        stats = await build().run_once(limit=5)
        content.list_unanalyzed.assert_awaited_with(5)
        assert stats["total"] == 0
        assert stats["sources_refreshed"] == 0

    @pytest.mark.asyncio
    async def test_item_without_source(self, build, repos) -> None:
        content, _, sources = repos
        content.list_unanalyzed.return_value = [_item(1, None, "Bitcoin rallies")]

        stats = await build().run_once()

        assert stats["processed"] == 1
        sources.refresh_average_sentiment.assert_not_awaited()
