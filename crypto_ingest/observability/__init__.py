"""Observability layer - logging and metrics."""

from crypto_ingest.observability.logging import bound_context, get_logger, setup_logging
from crypto_ingest.observability.metrics import MetricsCollector, get_metrics

__all__ = [
    "setup_logging",
    "get_logger",
    "bound_context",
    "MetricsCollector",
    "get_metrics",
]
