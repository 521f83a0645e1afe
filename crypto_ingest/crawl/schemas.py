"""Result types for crawl cycles."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class SourceCrawlResult:
    """Outcome of crawling one source."""

    source_type: str
    identifier: str
    status: str  # success, not_modified, failed
    created: int = 0
    skipped: int = 0
    invalid: int = 0
    item_errors: int = 0
    keyword_links: int = 0
    link_errors: int = 0
    data_quality_warnings: int = 0
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_type": self.source_type,
            "identifier": self.identifier,
            "status": self.status,
            "created": self.created,
            "skipped": self.skipped,
            "invalid": self.invalid,
            "item_errors": self.item_errors,
            "keyword_links": self.keyword_links,
            "link_errors": self.link_errors,
            "data_quality_warnings": self.data_quality_warnings,
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class SourceTypeReport:
    """Aggregate of one source type within a crawl cycle."""

    source_type: str
    sources_due: int = 0
    sources_crawled: int = 0
    sources_not_modified: int = 0
    sources_failed: int = 0
    sources_skipped_deadline: int = 0
    items_created: int = 0
    items_skipped: int = 0
    items_invalid: int = 0
    errors: list[str] = field(default_factory=list)
    results: list[SourceCrawlResult] = field(default_factory=list)

    def add(self, result: SourceCrawlResult) -> None:
        self.results.append(result)
        self.sources_crawled += 1
        self.items_created += result.created
        self.items_skipped += result.skipped
        self.items_invalid += result.invalid
        if result.status == "not_modified":
            self.sources_not_modified += 1
        if result.failed:
            self.sources_failed += 1
            self.errors.append(f"{result.identifier}: {result.error}")
        elif result.item_errors:
            self.errors.append(
                f"{result.identifier}: {result.item_errors} item(s) failed to persist"
            )

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_type": self.source_type,
            "sources_due": self.sources_due,
            "sources_crawled": self.sources_crawled,
            "sources_not_modified": self.sources_not_modified,
            "sources_failed": self.sources_failed,
            "sources_skipped_deadline": self.sources_skipped_deadline,
            "items_created": self.items_created,
            "items_skipped": self.items_skipped,
            "items_invalid": self.items_invalid,
            "errors": self.errors,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class RunReport:
    """Aggregate of one crawl cycle across all source types."""

    started_at: datetime
    finished_at: datetime | None = None
    by_type: dict[str, SourceTypeReport] = field(default_factory=dict)
    deadline_hit: bool = False

    @property
    def total_created(self) -> int:
        return sum(r.items_created for r in self.by_type.values())

    @property
    def total_skipped(self) -> int:
        return sum(r.items_skipped for r in self.by_type.values())

    @property
    def total_errors(self) -> int:
        return sum(r.error_count for r in self.by_type.values())

    @property
    def is_successful(self) -> bool:
        return self.total_errors == 0

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "deadline_hit": self.deadline_hit,
            "total_created": self.total_created,
            "total_skipped": self.total_skipped,
            "total_errors": self.total_errors,
            "is_successful": self.is_successful,
            "by_type": {k: v.to_dict() for k, v in self.by_type.items()},
        }
