"""Sources service: registration, seeding, feed discovery and health summary."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from crypto_ingest.ingestion.discovery import discover_feed_urls
from crypto_ingest.ingestion.errors import FetchError, FormatError
from crypto_ingest.ingestion.normalizer import normalize
from crypto_ingest.ingestion.schemas import NotModified, SourceType
from crypto_ingest.sources.config import SourcesConfig
from crypto_ingest.sources.repository import SourcesRepository
from crypto_ingest.sources.schemas import Source
from crypto_ingest.storage.database import Database

if TYPE_CHECKING:
    from crypto_ingest.ingestion.fetcher import ConditionalFetcher

logger = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).parent / "data" / "seed_sources.json"


@dataclass
class DiscoveryResult:
    """Outcome of discovering and registering feeds for a website."""

    website_url: str
    feeds_found: int = 0
    added: list[Source] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.added)


class SourcesService:
    """Registry operations on top of SourcesRepository."""

    def __init__(
        self,
        database: Database,
        config: SourcesConfig | None = None,
        repository: SourcesRepository | None = None,
    ) -> None:
        self._config = config or SourcesConfig()
        self._repo = repository or SourcesRepository(database)

    @property
    def repository(self) -> SourcesRepository:
        """Access the underlying repository for direct DB operations."""
        return self._repo

    @property
    def config(self) -> SourcesConfig:
        return self._config

    def _parse_seed_entry(self, entry: dict) -> Source:
        """Convert a JSON seed entry to a Source dataclass."""
        source_type = SourceType(entry["source_type"]).value
        return Source(
            source_type=source_type,
            identifier=entry["identifier"],
            display_name=entry.get("display_name", ""),
            description=entry.get("description", ""),
            is_active=entry.get("is_active", True),
            crawl_interval_minutes=entry.get(
                "crawl_interval_minutes", self._config.default_interval(source_type)
            ),
            metadata=entry.get("metadata", {}),
        )

    # ── Registration ────────────────────────────────────────────

    async def add_source(
        self,
        source_type: SourceType | str,
        identifier: str,
        display_name: str = "",
        description: str = "",
        crawl_interval_minutes: int | None = None,
        metadata: dict | None = None,
    ) -> Source:
        """Register (or re-describe) a source; crawl state is left untouched."""
        source_type = SourceType(source_type).value
        source = Source(
            source_type=source_type,
            identifier=identifier.strip(),
            display_name=display_name,
            description=description,
            crawl_interval_minutes=(
                crawl_interval_minutes or self._config.default_interval(source_type)
            ),
            metadata=metadata or {},
        )
        stored = await self._repo.upsert(source)
        logger.info(f"Registered {source_type} source {stored.identifier}")
        return stored

    async def deactivate(self, source_type: str, identifier: str) -> bool:
        """Soft-remove a source; its content stays referenced."""
        return await self._repo.set_active(source_type, identifier, False)

    async def activate(self, source_type: str, identifier: str) -> bool:
        return await self._repo.set_active(source_type, identifier, True)

    async def reset_failures(self, source_type: str | None = None) -> int:
        """Put disabled sources back in rotation."""
        count = await self._repo.reset_failures(source_type)
        logger.info(f"Reset failure streaks on {count} sources")
        return count

    # ── Seed ────────────────────────────────────────────────────

    async def seed_from_json(self, path: Path | None = None) -> int:
        """Load sources from a JSON file into the database.

        Returns the number of sources upserted.
        """
        seed_path = path or _SEED_FILE
        with open(seed_path) as f:
            entries = json.load(f)

        sources = [self._parse_seed_entry(e) for e in entries]
        count = await self._repo.bulk_upsert(sources)
        logger.info("Seeded %d sources from %s", count, seed_path)
        return count

    async def ensure_seeded(self) -> None:
        """Seed from default JSON if the table is empty and seed_on_init is True."""
        if not self._config.seed_on_init:
            return

        existing = await self._repo.count()
        if existing > 0:
            logger.debug("Sources table has %d rows, skipping seed", existing)
            return

        logger.info("Sources table empty, seeding from default JSON")
        await self.seed_from_json()

    # ── Discovery ───────────────────────────────────────────────

    async def discover_and_add_feed(
        self,
        website_url: str,
        fetcher: "ConditionalFetcher",
        user_agent: str,
        name: str | None = None,
    ) -> DiscoveryResult:
        """
        Find the feeds a website advertises and register the valid new ones.

        Each candidate is fetched and parsed once before it is registered.
        Feeds already registered are skipped.
        """
        result = DiscoveryResult(website_url=website_url)
        candidates = await discover_feed_urls(fetcher.client, website_url, user_agent)
        result.feeds_found = len(candidates)

        if not candidates:
            result.errors.append("No RSS feeds found on the website")
            return result

        for feed_url in candidates:
            if await self._repo.get_by_key(SourceType.FEED.value, feed_url):
                logger.info(f"Feed already registered: {feed_url}")
                continue

            probe = Source(source_type=SourceType.FEED.value, identifier=feed_url)
            try:
                payload = await fetcher.fetch(probe)
                if isinstance(payload, NotModified):
                    raise FormatError("unexpected 304 without validators")
                feed = normalize(payload.body, SourceType.FEED, base_url=feed_url)
            except (FetchError, FormatError) as e:
                result.errors.append(f"Invalid feed {feed_url}: {e}")
                continue

            display_name = name or feed.metadata.get("title") or urlparse(website_url).netloc
            source = await self.add_source(
                SourceType.FEED,
                feed_url,
                display_name=display_name,
                description=feed.metadata.get("description") or "",
                metadata={
                    "website_url": website_url,
                    "category": "news",
                    "language": feed.metadata.get("language"),
                },
            )
            result.added.append(source)

        return result

    # ── Health ──────────────────────────────────────────────────

    async def health_status(self, now: datetime | None = None) -> dict[str, dict[str, int]]:
        """Per-type and overall counts: total, active, healthy, unhealthy, recently_active."""
        now = now or datetime.now(timezone.utc)
        per_type = await self._repo.health_counts(
            self._config.unhealthy_threshold,
            now - timedelta(hours=24),
        )
        overall = {"total": 0, "active": 0, "healthy": 0, "unhealthy": 0, "recently_active": 0}
        for counts in per_type.values():
            for key in overall:
                overall[key] += counts.get(key, 0)
        return {**per_type, "all": overall}
