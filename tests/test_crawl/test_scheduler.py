"""Tests for due-source selection."""

from datetime import datetime, timedelta, timezone

import pytest

from crypto_ingest.crawl.scheduler import SourceScheduler, select_due
from crypto_ingest.sources.config import SourcesConfig

NOW = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)


class TestSelectDue:
    """Tests for filtering and ordering due sources."""

    def test_never_crawled_first_then_oldest(self, make_source) -> None:
        recent = make_source(identifier="recent", id=1, last_crawled_at=NOW - timedelta(hours=2))
        oldest = make_source(identifier="oldest", id=2, last_crawled_at=NOW - timedelta(days=2))
        fresh = make_source(identifier="fresh", id=3)

        due = select_due([recent, oldest, fresh], NOW, disable_threshold=10)

        assert [s.identifier for s in due] == ["fresh", "oldest", "recent"]

    def test_excludes_not_yet_due(self, make_source) -> None:
        waiting = make_source(last_crawled_at=NOW - timedelta(minutes=30))
        assert select_due([waiting], NOW, disable_threshold=10) == []

    def test_excludes_inactive_and_failing(self, make_source) -> None:
        inactive = make_source(identifier="a", is_active=False)
        failing = make_source(identifier="b", consecutive_failures=11)
        at_threshold = make_source(identifier="c", consecutive_failures=10)

        due = select_due([inactive, failing, at_threshold], NOW, disable_threshold=10)

        assert [s.identifier for s in due] == ["c"]

    def test_naive_timestamps_treated_as_utc(self, make_source) -> None:
        naive = make_source(last_crawled_at=datetime(2025, 1, 6, 10, 0))
        assert len(select_due([naive], NOW, disable_threshold=10)) == 1


class TestSourceScheduler:
    """Tests for the repository-backed scheduler."""

    @pytest.mark.asyncio
    async def test_due_sources_by_type(self, make_source, sources_repo) -> None:
        sources_repo.sources = [
            make_source(identifier="https://a.example/feed", id=1),
            make_source(source_type="reddit", identifier="CryptoCurrency", id=2),
            make_source(
                identifier="https://b.example/feed",
                id=3,
                last_crawled_at=NOW - timedelta(minutes=5),
            ),
        ]
        scheduler = SourceScheduler(sources_repo, SourcesConfig())

        due = await scheduler.due_sources(NOW, "feed")

        assert [s.id for s in due] == [1]
        assert len(await scheduler.due_sources(NOW)) == 2
