"""Ingestion: conditional fetch, format normalization, deduplicating ingest."""

from crypto_ingest.ingestion.errors import (
    FetchError,
    FormatError,
    IngestError,
    PersistenceError,
    ValidationError,
)
from crypto_ingest.ingestion.schemas import (
    CanonicalItem,
    FetchedPayload,
    NormalizedFeed,
    NotModified,
    PayloadFormat,
    SourceType,
)

__all__ = [
    "CanonicalItem",
    "FetchedPayload",
    "FetchError",
    "FormatError",
    "IngestError",
    "NormalizedFeed",
    "NotModified",
    "PayloadFormat",
    "PersistenceError",
    "SourceType",
    "ValidationError",
]
