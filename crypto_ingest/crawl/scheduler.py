"""
Source scheduler.

Decides which sources are due for a crawl. A source is due when it is
active, its failure streak is within the disable threshold, and it has
either never been crawled or its crawl interval has elapsed. Due sources
come back oldest-crawl first, never-crawled sources ahead of all others.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from crypto_ingest.sources.config import SourcesConfig
from crypto_ingest.sources.repository import SourcesRepository
from crypto_ingest.sources.schemas import Source

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _crawl_order(source: Source) -> tuple[bool, datetime]:
    last = source.last_crawled_at
    if last is None:
        return (False, _EPOCH)
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return (True, last)


def select_due(
    sources: Iterable[Source],
    now: datetime,
    disable_threshold: int,
) -> list[Source]:
    """Filter ``sources`` to the due ones, oldest crawl first."""
    due = [s for s in sources if s.is_due(now, disable_threshold)]
    return sorted(due, key=_crawl_order)


class SourceScheduler:
    """Read-only view of which sources should be crawled now."""

    def __init__(
        self,
        repository: SourcesRepository,
        config: SourcesConfig | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or SourcesConfig()

    async def due_sources(
        self,
        now: datetime | None = None,
        source_type: str | None = None,
    ) -> list[Source]:
        """
        Sources due for crawling at ``now``.

        Args:
            now: Reference time (default: current UTC time)
            source_type: Restrict to one source type

        Returns:
            Due sources, oldest ``last_crawled_at`` first
        """
        now = now or datetime.now(timezone.utc)
        threshold = self._config.disable_threshold
        candidates = await self._repo.list_schedulable(threshold, source_type)
        return select_due(candidates, now, threshold)
