"""
PostgreSQL connection pool shared by all repositories.

Driver and connectivity failures surface as PersistenceError so callers
only deal with the ingestion error taxonomy.
"""

import logging
from typing import Any

import asyncpg

from crypto_ingest.config.settings import get_settings
from crypto_ingest.ingestion.errors import PersistenceError

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class Database:
    """
    asyncpg pool wrapper.

    Constructed once by the entry point and passed to every repository.

    Usage:
        db = Database()
        await db.connect()
        try:
            rows = await db.fetch("SELECT * FROM sources")
        finally:
            await db.close()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = settings.db_command_timeout

        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Create the connection pool.

        Raises:
            PersistenceError: If the server cannot be reached
        """
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
        except _DRIVER_ERRORS as e:
            logger.error(f"Failed to connect to database: {e}")
            raise PersistenceError(f"Failed to connect to database: {e}") from e

        logger.info(f"Database connected (pool: {self._min_size}-{self._max_size})")

    async def close(self) -> None:
        """Close the pool; a no-op when not connected."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection closed")

    async def _call(self, method: str, query: str, *args: Any) -> Any:
        if self._pool is None:
            raise PersistenceError("Database not connected. Call connect() first.")
        try:
            async with self._pool.acquire() as conn:
                return await getattr(conn, method)(query, *args)
        except _DRIVER_ERRORS as e:
            raise PersistenceError(str(e)) from e

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the command status (e.g. "UPDATE 1")."""
        return await self._call("execute", query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self._call("fetch", query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self._call("fetchrow", query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self._call("fetchval", query, *args)

    async def health_check(self) -> bool:
        """True if the store answers a trivial query."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except PersistenceError:
            return False
