"""Storage layer: asyncpg connection pool."""

from crypto_ingest.storage.database import Database

__all__ = ["Database"]
