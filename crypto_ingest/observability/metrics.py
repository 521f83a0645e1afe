"""
Prometheus metrics for monitoring the crawl pipeline.

Defines and exposes metrics for:
- Sources crawled per type and outcome
- Items created, skipped and rejected
- Fetch errors and conditional-fetch hits
- Crawl latency and cycle duration
- Source health

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from crypto_ingest.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
CYCLE_BUCKETS = (1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the crawl pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_source_crawled("feed", "success", latency=0.8)
        metrics.record_items("feed", created=12, skipped=3)
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize Prometheus metrics.

        Args:
            registry: Registry to register metrics in (default: global REGISTRY)
        """
        self._registry = registry or REGISTRY

        self.sources_crawled = Counter(
            "crypto_ingest_sources_crawled_total",
            "Total source crawls by outcome",
            ["source_type", "status"],  # status: success, not_modified, failed
            registry=self._registry,
        )

        self.items_ingested = Counter(
            "crypto_ingest_items_total",
            "Items handled by the deduplicating ingestor",
            ["source_type", "outcome"],  # outcome: created, skipped, invalid, error
            registry=self._registry,
        )

        self.fetch_errors = Counter(
            "crypto_ingest_fetch_errors_total",
            "Source-scoped crawl errors",
            ["source_type", "error_type"],
            registry=self._registry,
        )

        self.data_quality_warnings = Counter(
            "crypto_ingest_data_quality_warnings_total",
            "Normalizer fallbacks (synthetic ids, date fallbacks, dropped items)",
            ["source_type", "kind"],
            registry=self._registry,
        )

        self.keywords_linked = Counter(
            "crypto_ingest_keywords_linked_total",
            "Keyword-content links written",
            ["source_type"],
            registry=self._registry,
        )

        self.crawl_latency = Histogram(
            "crypto_ingest_crawl_latency_seconds",
            "Time to crawl a single source end to end",
            ["source_type"],
            buckets=LATENCY_BUCKETS,
            registry=self._registry,
        )

        self.cycle_duration = Histogram(
            "crypto_ingest_cycle_duration_seconds",
            "Duration of a full crawl cycle",
            buckets=CYCLE_BUCKETS,
            registry=self._registry,
        )

        self.source_health = Gauge(
            "crypto_ingest_sources_by_health",
            "Number of sources per health bucket",
            ["source_type", "state"],  # state: active, healthy, unhealthy, due
            registry=self._registry,
        )

        self.sentiment_analyzed = Counter(
            "crypto_ingest_sentiment_analyzed_total",
            "Content items enriched with sentiment",
            ["status"],  # status: success, error
            registry=self._registry,
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=self._registry)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_source_crawled(
        self,
        source_type: str,
        status: str,
        latency: float | None = None,
    ) -> None:
        """
        Record the outcome of one source crawl.

        Args:
            source_type: reddit, wordpress or feed
            status: success, not_modified or failed
            latency: Optional end-to-end latency in seconds
        """
        self.sources_crawled.labels(source_type=source_type, status=status).inc()
        if latency is not None:
            self.crawl_latency.labels(source_type=source_type).observe(latency)

    def record_items(
        self,
        source_type: str,
        created: int = 0,
        skipped: int = 0,
        invalid: int = 0,
        errors: int = 0,
    ) -> None:
        """Record ingestor outcomes for one batch of items."""
        for outcome, count in (
            ("created", created),
            ("skipped", skipped),
            ("invalid", invalid),
            ("error", errors),
        ):
            if count:
                self.items_ingested.labels(
                    source_type=source_type, outcome=outcome
                ).inc(count)

    def record_fetch_error(self, source_type: str, error_type: str) -> None:
        """Record a source-scoped crawl failure."""
        self.fetch_errors.labels(source_type=source_type, error_type=error_type).inc()

    def record_data_quality(self, source_type: str, kind: str, count: int = 1) -> None:
        """Record normalizer fallbacks (synthetic_id, date_fallback, dropped)."""
        if count:
            self.data_quality_warnings.labels(source_type=source_type, kind=kind).inc(count)

    def record_keywords_linked(self, source_type: str, count: int) -> None:
        """Record the number of keyword links written for a source."""
        if count:
            self.keywords_linked.labels(source_type=source_type).inc(count)

    def record_cycle(self, duration: float) -> None:
        """Record the duration of a full crawl cycle."""
        self.cycle_duration.observe(duration)

    def set_source_health(self, source_type: str, state: str, count: int) -> None:
        """Set a source health gauge."""
        self.source_health.labels(source_type=source_type, state=state).set(count)

    def record_sentiment(self, status: str, count: int = 1) -> None:
        """Record sentiment enrichment outcomes."""
        if count:
            self.sentiment_analyzed.labels(status=status).inc(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
