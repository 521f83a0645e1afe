"""Database repository for the sources table."""

import json
import logging
from datetime import datetime
from typing import Any

from crypto_ingest.sources.schemas import CrawlError, Source
from crypto_ingest.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id                       BIGSERIAL PRIMARY KEY,
    source_type              TEXT NOT NULL,
    identifier               TEXT NOT NULL,
    display_name             TEXT NOT NULL DEFAULT '',
    description              TEXT NOT NULL DEFAULT '',
    is_active                BOOLEAN NOT NULL DEFAULT TRUE,
    crawl_interval_minutes   INTEGER NOT NULL DEFAULT 60,
    last_crawled_at          TIMESTAMPTZ,
    last_successful_crawl_at TIMESTAMPTZ,
    consecutive_failures     INTEGER NOT NULL DEFAULT 0,
    total_items_crawled      BIGINT NOT NULL DEFAULT 0,
    average_sentiment        DOUBLE PRECISION,
    etag                     TEXT,
    last_modified            TEXT,
    crawl_errors             JSONB NOT NULL DEFAULT '[]',
    metadata                 JSONB NOT NULL DEFAULT '{}',
    created_at               TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at               TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (source_type, identifier)
);

CREATE INDEX IF NOT EXISTS idx_sources_type_active
    ON sources(source_type, is_active) WHERE is_active = TRUE;
CREATE INDEX IF NOT EXISTS idx_sources_last_crawled
    ON sources(last_crawled_at NULLS FIRST);
"""

# Re-registering a source only touches descriptive fields; crawl state is
# owned by the crawl pipeline.
_UPSERT_SQL = """
INSERT INTO sources (
    source_type, identifier, display_name, description, is_active,
    crawl_interval_minutes, metadata
)
VALUES ($1, $2, $3, $4, $5, $6, $7)
ON CONFLICT (source_type, identifier) DO UPDATE SET
    display_name = EXCLUDED.display_name,
    description = EXCLUDED.description,
    is_active = EXCLUDED.is_active,
    crawl_interval_minutes = EXCLUDED.crawl_interval_minutes,
    metadata = EXCLUDED.metadata,
    updated_at = NOW()
RETURNING *
"""

_BULK_UPSERT_SQL = """
INSERT INTO sources (
    source_type, identifier, display_name, description, is_active,
    crawl_interval_minutes, metadata
)
SELECT * FROM unnest(
    $1::text[], $2::text[], $3::text[], $4::text[], $5::boolean[],
    $6::integer[], $7::jsonb[]
)
ON CONFLICT (source_type, identifier) DO UPDATE SET
    display_name = EXCLUDED.display_name,
    description = EXCLUDED.description,
    is_active = EXCLUDED.is_active,
    crawl_interval_minutes = EXCLUDED.crawl_interval_minutes,
    metadata = EXCLUDED.metadata,
    updated_at = NOW()
"""

_SCHEDULABLE_SQL = """
SELECT * FROM sources
WHERE is_active = TRUE
  AND consecutive_failures <= $1
  AND ($2::text IS NULL OR source_type = $2)
ORDER BY last_crawled_at ASC NULLS FIRST, id
"""

_MARK_DISPATCHED_SQL = """
UPDATE sources SET last_crawled_at = $2, updated_at = NOW()
WHERE id = $1
"""

_SAVE_CRAWL_STATE_SQL = """
UPDATE sources SET
    last_successful_crawl_at = $2,
    consecutive_failures = $3,
    etag = $4,
    last_modified = $5,
    crawl_errors = $6::jsonb,
    updated_at = NOW()
WHERE id = $1
"""

_INCREMENT_ITEMS_SQL = """
UPDATE sources SET
    total_items_crawled = total_items_crawled + $2,
    updated_at = NOW()
WHERE id = $1
"""

_REFRESH_SENTIMENT_SQL = """
UPDATE sources SET
    average_sentiment = (
        SELECT AVG(sentiment_score) FROM content_items
        WHERE source_id = $1 AND is_analyzed = TRUE AND sentiment_score IS NOT NULL
    ),
    updated_at = NOW()
WHERE id = $1
RETURNING average_sentiment
"""

_HEALTH_COUNTS_SQL = """
SELECT
    source_type,
    COUNT(*) AS total,
    COUNT(*) FILTER (WHERE is_active) AS active,
    COUNT(*) FILTER (WHERE is_active AND consecutive_failures <= $1) AS healthy,
    COUNT(*) FILTER (WHERE consecutive_failures > $1) AS unhealthy,
    COUNT(*) FILTER (WHERE last_successful_crawl_at >= $2) AS recently_active
FROM sources
GROUP BY source_type
ORDER BY source_type
"""


def _json_field(value: Any, default: Any) -> Any:
    """Decode a JSONB column that may arrive as text or as a decoded value."""
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    errors = _json_field(record["crawl_errors"], [])
    return Source(
        id=record["id"],
        source_type=record["source_type"],
        identifier=record["identifier"],
        display_name=record["display_name"],
        description=record["description"],
        is_active=record["is_active"],
        crawl_interval_minutes=record["crawl_interval_minutes"],
        last_crawled_at=record["last_crawled_at"],
        last_successful_crawl_at=record["last_successful_crawl_at"],
        consecutive_failures=record["consecutive_failures"],
        total_items_crawled=record["total_items_crawled"],
        average_sentiment=record["average_sentiment"],
        etag=record["etag"],
        last_modified=record["last_modified"],
        crawl_errors=[CrawlError.from_dict(e) for e in errors],
        metadata=dict(_json_field(record["metadata"], {})),
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SourcesRepository:
    """Persistence for sources and their crawl state."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def upsert(self, source: Source) -> Source:
        """Insert or update a single source, returning the stored row."""
        row = await self._db.fetchrow(
            _UPSERT_SQL,
            source.source_type,
            source.identifier,
            source.display_name,
            source.description,
            source.is_active,
            source.crawl_interval_minutes,
            json.dumps(source.metadata),
        )
        return _record_to_source(row) if row else source

    async def bulk_upsert(self, sources: list[Source]) -> int:
        """Insert or update multiple sources in one statement.

        Returns the number of sources processed.
        """
        if not sources:
            return 0

        await self._db.execute(
            _BULK_UPSERT_SQL,
            [s.source_type for s in sources],
            [s.identifier for s in sources],
            [s.display_name for s in sources],
            [s.description for s in sources],
            [s.is_active for s in sources],
            [s.crawl_interval_minutes for s in sources],
            [json.dumps(s.metadata) for s in sources],
        )
        logger.info("Bulk upserted %d sources", len(sources))
        return len(sources)

    async def get_by_key(self, source_type: str, identifier: str) -> Source | None:
        """Fetch a single source by type and identifier."""
        row = await self._db.fetchrow(
            "SELECT * FROM sources WHERE source_type = $1 AND identifier = $2",
            source_type, identifier,
        )
        return _record_to_source(row) if row else None

    async def get_by_id(self, source_id: int) -> Source | None:
        row = await self._db.fetchrow("SELECT * FROM sources WHERE id = $1", source_id)
        return _record_to_source(row) if row else None

    async def list_sources(
        self,
        source_type: str | None = None,
        active_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Source]:
        """List sources with optional filters."""
        conditions: list[str] = []
        params: list = []
        idx = 1

        if active_only:
            conditions.append("is_active = TRUE")

        if source_type:
            conditions.append(f"source_type = ${idx}")
            params.append(source_type)
            idx += 1

        where_clause = " WHERE " + " AND ".join(conditions) if conditions else ""
        sql = f"""
            SELECT * FROM sources{where_clause}
            ORDER BY source_type, identifier
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        params.extend([limit, offset])
        rows = await self._db.fetch(sql, *params)
        return [_record_to_source(r) for r in rows]

    async def list_schedulable(
        self,
        disable_threshold: int,
        source_type: str | None = None,
    ) -> list[Source]:
        """Active sources under the failure threshold, oldest crawl first."""
        rows = await self._db.fetch(_SCHEDULABLE_SQL, disable_threshold, source_type)
        return [_record_to_source(r) for r in rows]

    async def mark_dispatched(self, source: Source, now: datetime) -> None:
        """Record that a crawl of ``source`` was dispatched at ``now``."""
        await self._db.execute(_MARK_DISPATCHED_SQL, source.id, now)
        source.last_crawled_at = now

    async def save_crawl_state(self, source: Source) -> None:
        """Persist health fields and cache validators after a crawl."""
        await self._db.execute(
            _SAVE_CRAWL_STATE_SQL,
            source.id,
            source.last_successful_crawl_at,
            source.consecutive_failures,
            source.etag,
            source.last_modified,
            json.dumps([e.to_dict() for e in source.crawl_errors]),
        )

    async def increment_items(self, source: Source, count: int) -> None:
        """Atomically add ``count`` to the source's crawled item total."""
        if count <= 0:
            return
        await self._db.execute(_INCREMENT_ITEMS_SQL, source.id, count)
        source.total_items_crawled += count

    async def refresh_average_sentiment(self, source_id: int) -> float | None:
        """Recompute the average sentiment of a source from its analyzed content."""
        return await self._db.fetchval(_REFRESH_SENTIMENT_SQL, source_id)

    async def set_active(self, source_type: str, identifier: str, active: bool) -> bool:
        """Soft (de)activate a source. Returns True if a row was updated."""
        result = await self._db.execute(
            """
            UPDATE sources SET is_active = $3, updated_at = NOW()
            WHERE source_type = $1 AND identifier = $2 AND is_active <> $3
            """,
            source_type, identifier, active,
        )
        return result.endswith(" 1")

    async def reset_failures(self, source_type: str | None = None) -> int:
        """Clear failure streaks so disabled sources are scheduled again."""
        result = await self._db.execute(
            """
            UPDATE sources SET consecutive_failures = 0, updated_at = NOW()
            WHERE consecutive_failures > 0
              AND ($1::text IS NULL OR source_type = $1)
            """,
            source_type,
        )
        return int(result.split()[-1]) if result else 0

    async def health_counts(
        self,
        unhealthy_threshold: int,
        recent_since: datetime,
    ) -> dict[str, dict[str, int]]:
        """Per-type totals: total, active, healthy, unhealthy, recently_active."""
        rows = await self._db.fetch(_HEALTH_COUNTS_SQL, unhealthy_threshold, recent_since)
        return {
            r["source_type"]: {
                "total": r["total"],
                "active": r["active"],
                "healthy": r["healthy"],
                "unhealthy": r["unhealthy"],
                "recently_active": r["recently_active"],
            }
            for r in rows
        }

    async def count(self) -> int:
        """Count total sources in the table."""
        return await self._db.fetchval("SELECT COUNT(*) FROM sources")
