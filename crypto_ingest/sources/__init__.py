"""Sources: registry of crawlable sources and their health state."""

from crypto_ingest.sources.config import SourcesConfig
from crypto_ingest.sources.repository import SourcesRepository
from crypto_ingest.sources.schemas import CrawlError, Source
from crypto_ingest.sources.service import DiscoveryResult, SourcesService

__all__ = [
    "CrawlError",
    "DiscoveryResult",
    "Source",
    "SourcesConfig",
    "SourcesRepository",
    "SourcesService",
]
