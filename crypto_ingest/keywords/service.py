"""
Keyword linking and keyword analytics.

KeywordLinker runs right after a content item is created: it extracts the
item's relevant keywords, upserts each keyword and its link to the content,
and (when a sentiment is known) folds that sentiment into the keyword's
moving average. KeywordService wraps the read side and periodic cleanup.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from crypto_ingest.keywords.config import KeywordsConfig
from crypto_ingest.keywords.extractor import (
    KeywordExtractor,
    categorize_keyword,
    normalize_keyword,
)
from crypto_ingest.keywords.repository import KeywordRepository
from crypto_ingest.keywords.schemas import Keyword, KeywordLink

logger = structlog.get_logger(__name__)


class KeywordLinker:
    """Extracts keywords from one content item and persists its links."""

    def __init__(
        self,
        repository: KeywordRepository,
        config: KeywordsConfig | None = None,
        extractor: KeywordExtractor | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or KeywordsConfig()
        self._extractor = extractor or KeywordExtractor(self._config)

    async def process(
        self,
        content_id: int,
        content_type: str,
        text: str,
        title: str | None = None,
        sentiment_hint: float | None = None,
    ) -> list[KeywordLink]:
        """
        Link the relevant keywords of a content item.

        Args:
            content_id: Stored content id
            content_type: Source type of the content
            text: Content body
            title: Content title
            sentiment_hint: Sentiment of the content if already known

        Returns:
            The links written, in keyword rank order
        """
        links: list[KeywordLink] = []

        for extracted in self._extractor.extract(text, title):
            keyword = await self._repo.upsert_keyword(
                extracted.text, categorize_keyword(extracted.text)
            )
            link = await self._repo.upsert_link(
                KeywordLink(
                    keyword_id=keyword.id,
                    content_id=content_id,
                    content_type=content_type,
                    frequency=extracted.frequency,
                    relevance_score=extracted.relevance,
                    sentiment_score=sentiment_hint,
                    context=extracted.context,
                    keyword=extracted.text,
                )
            )
            if sentiment_hint is not None:
                await self._repo.apply_sentiment(
                    keyword.id, sentiment_hint, self._config.sentiment_weight
                )
            links.append(link)

        logger.debug(
            "Linked keywords",
            content_id=content_id,
            content_type=content_type,
            keywords=len(links),
        )
        return links


class KeywordService:
    """Read-side queries and periodic maintenance of keywords."""

    def __init__(
        self,
        repository: KeywordRepository,
        config: KeywordsConfig | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or KeywordsConfig()

    @property
    def repository(self) -> KeywordRepository:
        return self._repo

    async def cleanup(self, now: datetime | None = None) -> dict[str, int]:
        """Deactivate rare keywords and delete links past retention."""
        now = now or datetime.now(timezone.utc)
        deactivated = await self._repo.deactivate_rare(self._config.cleanup_min_frequency)
        cutoff = now - timedelta(days=self._config.link_retention_days)
        deleted = await self._repo.delete_links_before(cutoff)

        logger.info(
            "Keyword cleanup complete",
            deactivated_keywords=deactivated,
            deleted_links=deleted,
        )
        return {"deactivated_keywords": deactivated, "deleted_links": deleted}

    async def trending(self, limit: int = 20, now: datetime | None = None) -> list[Keyword]:
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=self._config.trending_window_days)
        return await self._repo.trending(self._config.trending_min_frequency, since, limit)

    async def by_category(self, category: str, limit: int = 50) -> list[Keyword]:
        return await self._repo.by_category(category, limit)

    async def find_content(
        self,
        terms: list[str],
        content_type: str | None = None,
        limit: int = 50,
    ) -> list[KeywordLink]:
        """Content links for any of the given (un-normalized) terms."""
        normalized = [normalize_keyword(t) for t in terms if normalize_keyword(t)]
        keywords = await self._repo.get_many_by_normalized(normalized)
        return await self._repo.content_by_keywords(
            [k.id for k in keywords], content_type, limit
        )

    async def analytics(self) -> dict[str, Any]:
        """Totals, category and sentiment distribution, top keywords."""
        stats = await self._repo.stats()
        return {
            "total_keywords": stats.get("total", 0),
            "active_keywords": stats.get("active", 0),
            "avg_frequency": stats.get("avg_frequency", 0.0),
            "avg_sentiment": stats.get("avg_sentiment", 0.0),
            "category_distribution": await self._repo.category_counts(),
            "sentiment_distribution": {
                "bullish": stats.get("bullish", 0),
                "bearish": stats.get("bearish", 0),
                "neutral": stats.get("neutral", 0),
            },
            "top_keywords": [k.to_dict() for k in await self._repo.most_relevant(10)],
        }
