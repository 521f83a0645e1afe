"""Sentiment enrichment of stored content."""

from crypto_ingest.sentiment.analyzer import (
    LexiconSentimentAnalyzer,
    SentimentAnalyzer,
    SentimentResult,
)
from crypto_ingest.sentiment.config import SentimentConfig
from crypto_ingest.sentiment.enricher import SentimentEnricher

__all__ = [
    "LexiconSentimentAnalyzer",
    "SentimentAnalyzer",
    "SentimentConfig",
    "SentimentEnricher",
    "SentimentResult",
]
