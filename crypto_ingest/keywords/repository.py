"""Database repository for keywords and keyword-content links.

Both tables are written concurrently by every source's crawl, so every
write is a single INSERT ... ON CONFLICT statement; there is no
read-then-write at the application layer.
"""

import logging
from datetime import datetime

from crypto_ingest.keywords.schemas import Keyword, KeywordLink
from crypto_ingest.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS keywords (
    id                BIGSERIAL PRIMARY KEY,
    normalized        TEXT NOT NULL UNIQUE,
    category          TEXT NOT NULL DEFAULT 'general',
    frequency         INTEGER NOT NULL DEFAULT 0,
    average_sentiment DOUBLE PRECISION NOT NULL DEFAULT 0,
    relevance_score   DOUBLE PRECISION NOT NULL DEFAULT 0,
    is_active         BOOLEAN NOT NULL DEFAULT TRUE,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_keywords_category
    ON keywords(category) WHERE is_active = TRUE;
CREATE INDEX IF NOT EXISTS idx_keywords_frequency
    ON keywords(frequency DESC);

CREATE TABLE IF NOT EXISTS keyword_content_links (
    id              BIGSERIAL PRIMARY KEY,
    keyword_id      BIGINT NOT NULL REFERENCES keywords(id),
    content_id      BIGINT NOT NULL,
    content_type    TEXT NOT NULL,
    frequency       INTEGER NOT NULL DEFAULT 1,
    relevance_score DOUBLE PRECISION NOT NULL DEFAULT 0,
    sentiment_score DOUBLE PRECISION,
    context         TEXT NOT NULL DEFAULT '',
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (keyword_id, content_id, content_type)
);

CREATE INDEX IF NOT EXISTS idx_links_content
    ON keyword_content_links(content_id, content_type);
CREATE INDEX IF NOT EXISTS idx_links_created
    ON keyword_content_links(created_at);
"""

_UPSERT_KEYWORD_SQL = """
INSERT INTO keywords (normalized, category, frequency, relevance_score)
VALUES ($1, $2, 1, 0.01 * 0.7)
ON CONFLICT (normalized) DO UPDATE SET
    frequency = keywords.frequency + 1,
    relevance_score = LEAST((keywords.frequency + 1) / 100.0, 1.0) * 0.7
        + ABS(keywords.average_sentiment) * 0.3,
    updated_at = NOW()
RETURNING *
"""

# SET expressions see the pre-update row, so the EMA is spelled out twice.
# Casts keep the driver from inferring integer parameters from "1 - $2".
_APPLY_SENTIMENT_SQL = """
UPDATE keywords SET
    average_sentiment = average_sentiment * (1 - $2::double precision)
        + $3::double precision * $2::double precision,
    relevance_score = LEAST(frequency / 100.0, 1.0) * 0.7
        + ABS(average_sentiment * (1 - $2::double precision)
            + $3::double precision * $2::double precision) * 0.3,
    updated_at = NOW()
WHERE id = $1
RETURNING average_sentiment
"""

_UPSERT_LINK_SQL = """
INSERT INTO keyword_content_links (
    keyword_id, content_id, content_type, frequency,
    relevance_score, sentiment_score, context
)
VALUES ($1, $2, $3, $4, $5, $6, $7)
ON CONFLICT (keyword_id, content_id, content_type) DO UPDATE SET
    frequency = keyword_content_links.frequency + EXCLUDED.frequency,
    relevance_score = EXCLUDED.relevance_score,
    sentiment_score = COALESCE(EXCLUDED.sentiment_score, keyword_content_links.sentiment_score),
    context = CASE WHEN EXCLUDED.context <> '' THEN EXCLUDED.context
                   ELSE keyword_content_links.context END,
    updated_at = NOW()
RETURNING *
"""

_STATS_SQL = """
SELECT
    COUNT(*) AS total,
    COUNT(*) FILTER (WHERE is_active) AS active,
    COALESCE(AVG(frequency) FILTER (WHERE is_active), 0) AS avg_frequency,
    COALESCE(AVG(average_sentiment) FILTER (WHERE is_active), 0) AS avg_sentiment,
    COUNT(*) FILTER (WHERE is_active AND average_sentiment >= $1::double precision) AS bullish,
    COUNT(*) FILTER (WHERE is_active AND average_sentiment <= -$1) AS bearish,
    COUNT(*) FILTER (WHERE is_active AND average_sentiment > -$1 AND average_sentiment < $1) AS neutral
FROM keywords
"""


def _record_to_keyword(record) -> Keyword:
    """Convert an asyncpg Record to a Keyword dataclass."""
    return Keyword(
        id=record["id"],
        normalized=record["normalized"],
        category=record["category"],
        frequency=record["frequency"],
        average_sentiment=record["average_sentiment"],
        relevance_score=record["relevance_score"],
        is_active=record["is_active"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


def _record_to_link(record, keyword: str = "") -> KeywordLink:
    """Convert an asyncpg Record to a KeywordLink dataclass."""
    return KeywordLink(
        id=record["id"],
        keyword_id=record["keyword_id"],
        content_id=record["content_id"],
        content_type=record["content_type"],
        frequency=record["frequency"],
        relevance_score=record["relevance_score"],
        sentiment_score=record["sentiment_score"],
        context=record["context"],
        keyword=keyword,
        created_at=record["created_at"],
    )


def _affected_rows(status: str) -> int:
    """Row count from a PostgreSQL command status such as "UPDATE 3"."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class KeywordRepository:
    """Persistence for keywords and their links to content."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create keyword tables and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Keyword tables ensured")

    # ── Writes ──────────────────────────────────────────────────

    async def upsert_keyword(self, normalized: str, category: str) -> Keyword:
        """Create a keyword with frequency 1, or increment an existing one."""
        row = await self._db.fetchrow(_UPSERT_KEYWORD_SQL, normalized, category)
        return _record_to_keyword(row)

    async def apply_sentiment(
        self, keyword_id: int, sentiment: float, weight: float
    ) -> float | None:
        """Fold one sentiment observation into the keyword's moving average."""
        return await self._db.fetchval(_APPLY_SENTIMENT_SQL, keyword_id, weight, sentiment)

    async def upsert_link(self, link: KeywordLink) -> KeywordLink:
        """Create a keyword-content link or add to its frequency."""
        row = await self._db.fetchrow(
            _UPSERT_LINK_SQL,
            link.keyword_id,
            link.content_id,
            link.content_type,
            link.frequency,
            link.relevance_score,
            link.sentiment_score,
            link.context,
        )
        return _record_to_link(row, keyword=link.keyword)

    async def set_content_sentiment(
        self, content_id: int, content_type: str, sentiment: float
    ) -> int:
        """Stamp the owning content's sentiment on all of its links."""
        status = await self._db.execute(
            """
            UPDATE keyword_content_links SET sentiment_score = $3, updated_at = NOW()
            WHERE content_id = $1 AND content_type = $2
            """,
            content_id, content_type, sentiment,
        )
        return _affected_rows(status)

    async def deactivate_rare(self, min_frequency: int) -> int:
        """Deactivate keywords whose global frequency is below ``min_frequency``."""
        status = await self._db.execute(
            """
            UPDATE keywords SET is_active = FALSE, updated_at = NOW()
            WHERE frequency < $1 AND is_active = TRUE
            """,
            min_frequency,
        )
        return _affected_rows(status)

    async def delete_links_before(self, cutoff: datetime) -> int:
        status = await self._db.execute(
            "DELETE FROM keyword_content_links WHERE created_at < $1",
            cutoff,
        )
        return _affected_rows(status)

    # ── Reads ───────────────────────────────────────────────────

    async def get_by_normalized(self, normalized: str) -> Keyword | None:
        row = await self._db.fetchrow(
            "SELECT * FROM keywords WHERE normalized = $1", normalized
        )
        return _record_to_keyword(row) if row else None

    async def get_many_by_normalized(self, terms: list[str]) -> list[Keyword]:
        if not terms:
            return []
        rows = await self._db.fetch(
            "SELECT * FROM keywords WHERE normalized = ANY($1::text[])", terms
        )
        return [_record_to_keyword(r) for r in rows]

    async def links_for_content(self, content_id: int, content_type: str) -> list[KeywordLink]:
        rows = await self._db.fetch(
            """
            SELECT l.*, k.normalized FROM keyword_content_links l
            JOIN keywords k ON k.id = l.keyword_id
            WHERE l.content_id = $1 AND l.content_type = $2
            ORDER BY l.relevance_score DESC
            """,
            content_id, content_type,
        )
        return [_record_to_link(r, keyword=r["normalized"]) for r in rows]

    async def content_by_keywords(
        self,
        keyword_ids: list[int],
        content_type: str | None = None,
        limit: int = 50,
    ) -> list[KeywordLink]:
        """Links for any of the given keywords, most relevant first."""
        if not keyword_ids:
            return []
        rows = await self._db.fetch(
            """
            SELECT l.*, k.normalized FROM keyword_content_links l
            JOIN keywords k ON k.id = l.keyword_id
            WHERE l.keyword_id = ANY($1::bigint[])
              AND ($2::text IS NULL OR l.content_type = $2)
            ORDER BY l.relevance_score DESC, l.created_at DESC
            LIMIT $3
            """,
            keyword_ids, content_type, limit,
        )
        return [_record_to_link(r, keyword=r["normalized"]) for r in rows]

    async def trending(
        self, min_frequency: int, since: datetime, limit: int = 20
    ) -> list[Keyword]:
        """Frequent keywords first seen after ``since``."""
        rows = await self._db.fetch(
            """
            SELECT * FROM keywords
            WHERE frequency >= $1 AND created_at >= $2 AND is_active = TRUE
            ORDER BY frequency DESC, created_at DESC
            LIMIT $3
            """,
            min_frequency, since, limit,
        )
        return [_record_to_keyword(r) for r in rows]

    async def by_category(self, category: str, limit: int = 50) -> list[Keyword]:
        rows = await self._db.fetch(
            """
            SELECT * FROM keywords
            WHERE category = $1 AND is_active = TRUE
            ORDER BY frequency DESC
            LIMIT $2
            """,
            category, limit,
        )
        return [_record_to_keyword(r) for r in rows]

    async def most_relevant(self, limit: int = 10) -> list[Keyword]:
        rows = await self._db.fetch(
            """
            SELECT * FROM keywords WHERE is_active = TRUE
            ORDER BY relevance_score DESC, frequency DESC
            LIMIT $1
            """,
            limit,
        )
        return [_record_to_keyword(r) for r in rows]

    async def category_counts(self) -> dict[str, int]:
        rows = await self._db.fetch(
            """
            SELECT category, COUNT(*) AS count FROM keywords
            WHERE is_active = TRUE GROUP BY category
            """
        )
        return {r["category"]: r["count"] for r in rows}

    async def stats(self, sentiment_band: float = 0.3) -> dict[str, float]:
        """Totals, averages and bullish/bearish/neutral counts of active keywords."""
        row = await self._db.fetchrow(_STATS_SQL, sentiment_band)
        if row is None:
            return {}
        return {
            "total": row["total"],
            "active": row["active"],
            "avg_frequency": float(row["avg_frequency"]),
            "avg_sentiment": float(row["avg_sentiment"]),
            "bullish": row["bullish"],
            "bearish": row["bearish"],
            "neutral": row["neutral"],
        }
