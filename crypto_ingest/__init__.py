"""crypto-ingest: multi-source ingestion engine for crypto news and community content."""

__version__ = "0.1.0"
