"""
Crawl orchestrator.

Runs one crawl cycle across all source types. Each type is crawled by its
own task so that a type blowing up cannot take the others down. Within a
type a semaphore bounds how many sources are fetched at once, and a fixed
pause separates consecutive dispatches for rate-limited providers.

A run deadline stops dispatching new sources; crawls already in flight run
to completion and persist their results.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import structlog

from crypto_ingest.content.repository import ContentRepository
from crypto_ingest.crawl.config import CrawlConfig
from crypto_ingest.crawl.pipeline import SourceCrawler
from crypto_ingest.crawl.scheduler import SourceScheduler
from crypto_ingest.crawl.schemas import RunReport, SourceCrawlResult, SourceTypeReport
from crypto_ingest.ingestion.errors import PersistenceError
from crypto_ingest.ingestion.fetcher import ConditionalFetcher
from crypto_ingest.ingestion.ingestor import DeduplicatingIngestor
from crypto_ingest.ingestion.schemas import SourceType
from crypto_ingest.keywords.config import KeywordsConfig
from crypto_ingest.keywords.repository import KeywordRepository
from crypto_ingest.keywords.service import KeywordLinker
from crypto_ingest.observability.logging import bound_context
from crypto_ingest.observability.metrics import MetricsCollector, get_metrics
from crypto_ingest.sources.config import SourcesConfig
from crypto_ingest.sources.repository import SourcesRepository
from crypto_ingest.sources.schemas import Source
from crypto_ingest.sources.service import SourcesService
from crypto_ingest.storage.database import Database

logger = structlog.get_logger(__name__)


class CrawlOrchestrator:
    """
    Runs crawl cycles over all due sources.

    Usage:
        orchestrator = build_orchestrator(db, fetcher)
        report = await orchestrator.run_cycle()
    """

    def __init__(
        self,
        database: Database,
        crawler: SourceCrawler,
        scheduler: SourceScheduler,
        sources: SourcesService,
        config: CrawlConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._db = database
        self._crawler = crawler
        self._scheduler = scheduler
        self._sources = sources
        self._config = config or CrawlConfig()
        self._metrics = metrics or get_metrics()
        self._running = False
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    # ── Cycle ───────────────────────────────────────────────────

    async def run_cycle(
        self,
        source_types: list[SourceType | str] | None = None,
        now: datetime | None = None,
    ) -> RunReport:
        """
        Crawl every due source once.

        Args:
            source_types: Restrict the cycle to these types (default: all)
            now: Scheduling reference time (default: current UTC time)

        Returns:
            RunReport aggregating every source's outcome

        Raises:
            PersistenceError: If the store is unavailable before the cycle starts
        """
        if not await self._db.health_check():
            raise PersistenceError("Persistent store unavailable, crawl cycle aborted")

        started_at = datetime.now(timezone.utc)
        now = now or started_at
        types = [SourceType(t) for t in (source_types or list(SourceType))]
        report = RunReport(started_at=started_at)
        for source_type in types:
            report.by_type[source_type.value] = SourceTypeReport(source_type=source_type.value)

        deadline = None
        if self._config.run_deadline_seconds is not None:
            deadline = time.monotonic() + self._config.run_deadline_seconds

        with bound_context(cycle=started_at.strftime("%Y%m%dT%H%M%S")):
            logger.info("Crawl cycle started", source_types=[t.value for t in types])
            outcomes = await asyncio.gather(
                *(
                    self._run_type(t, report.by_type[t.value], report, now, deadline)
                    for t in types
                ),
                return_exceptions=True,
            )
        for source_type, outcome in zip(types, outcomes):
            if isinstance(outcome, BaseException):
                report.by_type[source_type.value].errors.append(
                    f"{source_type.value} crawl aborted: {outcome}"
                )
                logger.error(
                    "Source type crawl aborted",
                    source_type=source_type.value,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )

        report.finished_at = datetime.now(timezone.utc)
        self._metrics.record_cycle(report.duration_seconds)
        logger.info(
            "Crawl cycle finished",
            created=report.total_created,
            skipped=report.total_skipped,
            errors=report.total_errors,
            deadline_hit=report.deadline_hit,
            duration_seconds=round(report.duration_seconds, 2),
        )
        return report

    async def _run_type(
        self,
        source_type: SourceType,
        type_report: SourceTypeReport,
        report: RunReport,
        now: datetime,
        deadline: float | None,
    ) -> None:
        due = await self._scheduler.due_sources(now, source_type.value)
        type_report.sources_due = len(due)
        if not due:
            return

        semaphore = asyncio.Semaphore(self._config.concurrency(source_type.value))
        delay = self._config.delay(source_type.value)
        tasks: list[asyncio.Task] = []

        for index, source in enumerate(due):
            await semaphore.acquire()
            if index > 0 and delay > 0:
                await asyncio.sleep(delay)

            if deadline is not None and time.monotonic() >= deadline:
                semaphore.release()
                type_report.sources_skipped_deadline = len(due) - index
                report.deadline_hit = True
                logger.warning(
                    "Run deadline reached, not dispatching remaining sources",
                    source_type=source_type.value,
                    remaining=len(due) - index,
                )
                break

            tasks.append(
                asyncio.create_task(
                    self._crawl_one(source, semaphore),
                    name=f"crawl_{source_type.value}_{source.id}",
                )
            )

        for result in await asyncio.gather(*tasks):
            type_report.add(result)

    async def _crawl_one(
        self, source: Source, semaphore: asyncio.Semaphore
    ) -> SourceCrawlResult:
        """Crawl one source; never raises so one source cannot sink its type."""
        try:
            await self._sources.repository.mark_dispatched(
                source, datetime.now(timezone.utc)
            )
            return await self._crawler.crawl(source)
        except Exception as e:
            logger.error(
                "Source crawl error",
                source_type=source.source_type,
                source=source.identifier,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._metrics.record_source_crawled(source.source_type, "failed")
            return SourceCrawlResult(
                source_type=source.source_type,
                identifier=source.identifier,
                status="failed",
                error=f"{type(e).__name__}: {e}",
            )
        finally:
            semaphore.release()

    # ── Admin actions ───────────────────────────────────────────

    async def crawl_source(
        self, source_type: SourceType | str, identifier: str
    ) -> SourceCrawlResult | None:
        """Crawl one source right now, ignoring its schedule.

        Returns None when no such source is registered.
        """
        source = await self._sources.repository.get_by_key(
            SourceType(source_type).value, identifier
        )
        if source is None:
            return None
        await self._sources.repository.mark_dispatched(source, datetime.now(timezone.utc))
        return await self._crawler.crawl(source)

    async def health_status(self, now: datetime | None = None) -> dict[str, Any]:
        """Source health counts per type plus how many are due now."""
        now = now or datetime.now(timezone.utc)
        status: dict[str, Any] = await self._sources.health_status(now)
        for source_type in SourceType:
            due = await self._scheduler.due_sources(now, source_type.value)
            counts = status.setdefault(
                source_type.value,
                {"total": 0, "active": 0, "healthy": 0, "unhealthy": 0, "recently_active": 0},
            )
            counts["due"] = len(due)
            for state in ("active", "healthy", "unhealthy", "due"):
                self._metrics.set_source_health(source_type.value, state, counts[state])
        status["all"]["due"] = sum(status[t.value]["due"] for t in SourceType)
        return status

    # ── Service loop ────────────────────────────────────────────

    async def run_forever(self, poll_interval: float | None = None) -> None:
        """Run crawl cycles until stop() is called."""
        interval = poll_interval or self._config.poll_interval_seconds
        self._running = True
        self._stop_event.clear()
        logger.info("Crawl service started", poll_interval=interval)

        while self._running:
            try:
                await self.run_cycle()
            except PersistenceError as e:
                logger.error("Crawl cycle skipped", error=str(e))

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Crawl service stopped")

    async def stop(self) -> None:
        """Stop after the current cycle finishes."""
        logger.info("Stopping crawl service")
        self._running = False
        self._stop_event.set()


def build_orchestrator(
    database: Database,
    fetcher: ConditionalFetcher,
    crawl_config: CrawlConfig | None = None,
    sources_config: SourcesConfig | None = None,
    keywords_config: KeywordsConfig | None = None,
    metrics: MetricsCollector | None = None,
) -> CrawlOrchestrator:
    """Wire an orchestrator and its collaborators around one database and fetcher."""
    crawl_config = crawl_config or CrawlConfig()
    sources_config = sources_config or SourcesConfig()
    metrics = metrics or get_metrics()

    sources_repo = SourcesRepository(database)
    sources_service = SourcesService(database, sources_config, repository=sources_repo)
    linker = None
    if crawl_config.link_keywords:
        linker = KeywordLinker(KeywordRepository(database), keywords_config)

    crawler = SourceCrawler(
        fetcher=fetcher,
        ingestor=DeduplicatingIngestor(ContentRepository(database)),
        sources=sources_repo,
        linker=linker,
        config=sources_config,
        metrics=metrics,
    )
    return CrawlOrchestrator(
        database=database,
        crawler=crawler,
        scheduler=SourceScheduler(sources_repo, sources_config),
        sources=sources_service,
        config=crawl_config,
        metrics=metrics,
    )
