"""
Per-source crawl pipeline: fetch -> normalize -> ingest -> link -> record health.

A SourceCrawler owns the source it is crawling for the duration of the
crawl and is the only writer of that source's health fields.
"""

import time
from datetime import datetime, timezone

import structlog

from crypto_ingest.crawl.schemas import SourceCrawlResult
from crypto_ingest.ingestion.errors import FetchError, FormatError, PersistenceError
from crypto_ingest.ingestion.fetcher import ConditionalFetcher
from crypto_ingest.ingestion.ingestor import DeduplicatingIngestor
from crypto_ingest.ingestion.normalizer import normalize
from crypto_ingest.ingestion.schemas import NotModified
from crypto_ingest.keywords.service import KeywordLinker
from crypto_ingest.observability.logging import bound_context
from crypto_ingest.observability.metrics import MetricsCollector, get_metrics
from crypto_ingest.sources.config import SourcesConfig
from crypto_ingest.sources.repository import SourcesRepository
from crypto_ingest.sources.schemas import Source

logger = structlog.get_logger(__name__)


class SourceCrawler:
    """Runs the full crawl of a single source."""

    def __init__(
        self,
        fetcher: ConditionalFetcher,
        ingestor: DeduplicatingIngestor,
        sources: SourcesRepository,
        linker: KeywordLinker | None = None,
        config: SourcesConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._ingestor = ingestor
        self._sources = sources
        self._linker = linker
        self._config = config or SourcesConfig()
        self._metrics = metrics or get_metrics()

    async def crawl(self, source: Source) -> SourceCrawlResult:
        """
        Crawl one source and persist everything it produced.

        Fetch and format failures are recorded on the source and returned as
        a failed result. Store failures on individual items are counted.

        Raises:
            PersistenceError: If the source's own state cannot be saved
        """
        start = time.monotonic()
        with bound_context(source_type=source.source_type, source=source.identifier):
            result = await self._crawl(source)

        result.duration_seconds = time.monotonic() - start
        self._metrics.record_source_crawled(
            source.source_type, result.status, latency=result.duration_seconds
        )
        return result

    async def _crawl(self, source: Source) -> SourceCrawlResult:
        result = SourceCrawlResult(
            source_type=source.source_type,
            identifier=source.identifier,
            status="success",
        )

        try:
            fetched = await self._fetcher.fetch(source)
            if isinstance(fetched, NotModified):
                source.record_success(
                    datetime.now(timezone.utc), fetched.etag, fetched.last_modified
                )
                await self._sources.save_crawl_state(source)
                result.status = "not_modified"
                logger.info("Source not modified")
                return result

            feed = normalize(fetched.body, source.source_type, base_url=source.identifier)
        except (FetchError, FormatError) as e:
            source.record_failure(
                datetime.now(timezone.utc), str(e), self._config.error_ring_size
            )
            await self._sources.save_crawl_state(source)
            self._metrics.record_fetch_error(source.source_type, type(e).__name__)
            logger.warning(
                "Source crawl failed",
                error=str(e),
                error_type=type(e).__name__,
                consecutive_failures=source.consecutive_failures,
            )
            result.status = "failed"
            result.error = str(e)
            return result

        result.data_quality_warnings = feed.warnings
        self._metrics.record_data_quality(source.source_type, "dropped", feed.dropped)
        self._metrics.record_data_quality(source.source_type, "synthetic_id", feed.synthetic_ids)
        self._metrics.record_data_quality(source.source_type, "date_fallback", feed.date_fallbacks)

        ingested = await self._ingestor.ingest(source, feed.items)
        result.created = ingested.created_count
        result.skipped = ingested.skipped
        result.invalid = ingested.invalid
        result.item_errors = ingested.errors
        self._metrics.record_items(
            source.source_type,
            created=ingested.created_count,
            skipped=ingested.skipped,
            invalid=ingested.invalid,
            errors=ingested.errors,
        )

        # Keep the old validators when some items were not stored, so the
        # next crawl fetches the full payload again.
        if ingested.errors:
            source.record_success(datetime.now(timezone.utc))
        else:
            source.record_success(
                datetime.now(timezone.utc), fetched.etag, fetched.last_modified
            )
        await self._sources.save_crawl_state(source)
        await self._sources.increment_items(source, ingested.created_count)

        if self._linker is not None:
            for item in ingested.created:
                try:
                    links = await self._linker.process(
                        item.id, item.content_type, item.body, item.title
                    )
                except PersistenceError as e:
                    result.link_errors += 1
                    logger.error("Keyword linking failed", content_id=item.id, error=str(e))
                    continue
                result.keyword_links += len(links)
            self._metrics.record_keywords_linked(source.source_type, result.keyword_links)

        logger.info(
            "Source crawled",
            created=result.created,
            skipped=result.skipped,
            invalid=result.invalid,
            item_errors=result.item_errors,
            keyword_links=result.keyword_links,
        )
        return result
