"""Tests for Database error wrapping."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from crypto_ingest.ingestion.errors import PersistenceError
from crypto_ingest.storage.database import Database


def _connected(conn: AsyncMock) -> Database:
    db = Database(database_url="postgresql://localhost/test", min_size=1, max_size=1)
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.acquire.return_value.__aexit__.return_value = False
    db._pool = pool
    return db


class TestDatabase:
    """Driver failures surface as PersistenceError."""

    @pytest.mark.asyncio
    async def test_connect_failure_wrapped(self) -> None:
        db = Database(database_url="postgresql://localhost/test")
        with patch(
            "crypto_ingest.storage.database.asyncpg.create_pool",
            AsyncMock(side_effect=OSError("connection refused")),
        ):
            with pytest.raises(PersistenceError, match="connection refused"):
                await db.connect()

    @pytest.mark.asyncio
    async def test_not_connected(self) -> None:
        db = Database(database_url="postgresql://localhost/test")
        assert not db.is_connected

        with pytest.raises(PersistenceError):
            await db.fetch("SELECT 1")
        assert await db.health_check() is False
        await db.close()

    @pytest.mark.asyncio
    async def test_query_error_wrapped(self) -> None:
        conn = AsyncMock()
        conn.execute.side_effect = OSError("connection reset")

        with pytest.raises(PersistenceError, match="connection reset"):
            await _connected(conn).execute("UPDATE sources SET is_active = TRUE")

    @pytest.mark.asyncio
    async def test_health_check(self) -> None:
        conn = AsyncMock()
        conn.fetchval.return_value = 1
        db = _connected(conn)

        assert await db.health_check() is True
        conn.fetchval.side_effect = OSError("gone")
        assert await db.health_check() is False
