"""Crawl: scheduling, per-source pipeline and cycle orchestration."""

from crypto_ingest.crawl.config import CrawlConfig
from crypto_ingest.crawl.orchestrator import CrawlOrchestrator, build_orchestrator
from crypto_ingest.crawl.pipeline import SourceCrawler
from crypto_ingest.crawl.scheduler import SourceScheduler, select_due
from crypto_ingest.crawl.schemas import RunReport, SourceCrawlResult, SourceTypeReport

__all__ = [
    "CrawlConfig",
    "CrawlOrchestrator",
    "RunReport",
    "SourceCrawlResult",
    "SourceCrawler",
    "SourceScheduler",
    "SourceTypeReport",
    "build_orchestrator",
    "select_due",
]
