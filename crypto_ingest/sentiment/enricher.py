"""
Sentiment enrichment worker.

Runs off the crawl path: picks up stored content that has not been
analyzed yet, scores it, and propagates the score to the keywords linked
to that content and to the source it came from.
"""

import time
from typing import Any

import structlog

from crypto_ingest.content.repository import ContentRepository
from crypto_ingest.content.schemas import ContentItem
from crypto_ingest.keywords.config import KeywordsConfig
from crypto_ingest.keywords.repository import KeywordRepository
from crypto_ingest.observability.metrics import MetricsCollector, get_metrics
from crypto_ingest.sentiment.analyzer import SentimentAnalyzer
from crypto_ingest.sentiment.config import SentimentConfig
from crypto_ingest.sources.repository import SourcesRepository

logger = structlog.get_logger(__name__)


class SentimentEnricher:
    """
    Applies a SentimentAnalyzer to unanalyzed content.

    Usage:
        enricher = SentimentEnricher(content_repo, keyword_repo, sources_repo, analyzer)
        stats = await enricher.run_once()
    """

    def __init__(
        self,
        content: ContentRepository,
        keywords: KeywordRepository,
        sources: SourcesRepository,
        analyzer: SentimentAnalyzer,
        config: SentimentConfig | None = None,
        keywords_config: KeywordsConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._content = content
        self._keywords = keywords
        self._sources = sources
        self._analyzer = analyzer
        self._config = config or SentimentConfig()
        self._keywords_config = keywords_config or KeywordsConfig()
        self._metrics = metrics or get_metrics()

    async def run_once(self, limit: int | None = None) -> dict[str, Any]:
        """
        Analyze one batch of unanalyzed content.

        Args:
            limit: Batch size (default from config)

        Returns:
            Processing statistics: total, processed, errors, keywords_updated,
            sources_refreshed, duration_seconds
        """
        start = time.monotonic()
        items = await self._content.list_unanalyzed(limit or self._config.batch_size)
        stats: dict[str, Any] = {
            "total": len(items),
            "processed": 0,
            "errors": 0,
            "keywords_updated": 0,
            "sources_refreshed": 0,
        }
        touched_sources: set[int] = set()

        for item in items:
            try:
                stats["keywords_updated"] += await self._enrich(item)
            except Exception as e:
                stats["errors"] += 1
                logger.error(
                    "Error analyzing content",
                    content_id=item.id,
                    content_type=item.content_type,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            stats["processed"] += 1
            if item.source_id is not None:
                touched_sources.add(item.source_id)

        for source_id in sorted(touched_sources):
            await self._sources.refresh_average_sentiment(source_id)
        stats["sources_refreshed"] = len(touched_sources)
        stats["duration_seconds"] = round(time.monotonic() - start, 3)

        self._metrics.record_sentiment("success", stats["processed"])
        self._metrics.record_sentiment("error", stats["errors"])
        logger.info("Sentiment enrichment complete", **stats)
        return stats

    async def _enrich(self, item: ContentItem) -> int:
        """Score one item and propagate it. Returns keywords updated."""
        result = await self._analyzer.analyze(item.text)
        await self._content.mark_analyzed(
            item.id, result.score, result.label, result.confidence
        )

        links = await self._keywords.links_for_content(item.id, item.content_type)
        for link in links:
            await self._keywords.apply_sentiment(
                link.keyword_id, result.score, self._keywords_config.sentiment_weight
            )
        if links:
            await self._keywords.set_content_sentiment(
                item.id, item.content_type, result.score
            )
        return len(links)
