"""Database repository for the content_items table."""

import logging
from datetime import datetime

from crypto_ingest.content.schemas import ContentItem
from crypto_ingest.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS content_items (
    id               BIGSERIAL PRIMARY KEY,
    content_type     TEXT NOT NULL,
    external_id      TEXT NOT NULL,
    source_id        BIGINT REFERENCES sources(id),
    title            TEXT NOT NULL DEFAULT '',
    body             TEXT NOT NULL DEFAULT '',
    summary          TEXT,
    url              TEXT,
    author           TEXT,
    tags             TEXT[] NOT NULL DEFAULT '{}',
    published_at     TIMESTAMPTZ,
    word_count       INTEGER NOT NULL DEFAULT 0,
    category         TEXT NOT NULL DEFAULT 'general',
    sentiment_score  DOUBLE PRECISION,
    sentiment_label  TEXT,
    confidence_score DOUBLE PRECISION,
    is_analyzed      BOOLEAN NOT NULL DEFAULT FALSE,
    analyzed_at      TIMESTAMPTZ,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (content_type, external_id)
);

CREATE INDEX IF NOT EXISTS idx_content_source
    ON content_items(source_id);
CREATE INDEX IF NOT EXISTS idx_content_published
    ON content_items(published_at DESC);
CREATE INDEX IF NOT EXISTS idx_content_unanalyzed
    ON content_items(created_at) WHERE is_analyzed = FALSE;
"""

# A concurrent insert of the same item loses silently: no row is returned
_INSERT_SQL = """
INSERT INTO content_items (
    content_type, external_id, source_id, title, body, summary, url,
    author, tags, published_at, word_count, category
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
ON CONFLICT (content_type, external_id) DO NOTHING
RETURNING id, created_at
"""

_MARK_ANALYZED_SQL = """
UPDATE content_items SET
    sentiment_score = $2,
    sentiment_label = $3,
    confidence_score = $4,
    is_analyzed = TRUE,
    analyzed_at = NOW()
WHERE id = $1
"""


def _record_to_item(record) -> ContentItem:
    """Convert an asyncpg Record to a ContentItem dataclass."""
    return ContentItem(
        id=record["id"],
        content_type=record["content_type"],
        external_id=record["external_id"],
        source_id=record["source_id"],
        title=record["title"],
        body=record["body"],
        summary=record["summary"],
        url=record["url"],
        author=record["author"],
        tags=list(record["tags"] or []),
        published_at=record["published_at"],
        word_count=record["word_count"],
        category=record["category"],
        sentiment_score=record["sentiment_score"],
        sentiment_label=record["sentiment_label"],
        confidence_score=record["confidence_score"],
        is_analyzed=record["is_analyzed"],
        analyzed_at=record["analyzed_at"],
        created_at=record["created_at"],
    )


class ContentRepository:
    """Persistence for crawled content items."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the content_items table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Content table ensured")

    async def exists(self, content_type: str, external_id: str) -> bool:
        """Check whether an item with this identity is already stored."""
        found = await self._db.fetchval(
            "SELECT 1 FROM content_items WHERE content_type = $1 AND external_id = $2",
            content_type, external_id,
        )
        return found is not None

    async def get_by_external_id(
        self, content_type: str, external_id: str
    ) -> ContentItem | None:
        row = await self._db.fetchrow(
            "SELECT * FROM content_items WHERE content_type = $1 AND external_id = $2",
            content_type, external_id,
        )
        return _record_to_item(row) if row else None

    async def get_by_id(self, content_id: int) -> ContentItem | None:
        row = await self._db.fetchrow("SELECT * FROM content_items WHERE id = $1", content_id)
        return _record_to_item(row) if row else None

    async def insert(self, item: ContentItem) -> ContentItem | None:
        """Insert a new item.

        Returns the item with its id set, or None if the same
        (content_type, external_id) already exists.
        """
        row = await self._db.fetchrow(
            _INSERT_SQL,
            item.content_type,
            item.external_id,
            item.source_id,
            item.title,
            item.body,
            item.summary,
            item.url,
            item.author,
            item.tags,
            item.published_at,
            item.word_count,
            item.category,
        )
        if row is None:
            return None
        item.id = row["id"]
        item.created_at = row["created_at"]
        return item

    async def list_unanalyzed(self, limit: int = 50) -> list[ContentItem]:
        """Oldest content items still waiting for sentiment analysis."""
        rows = await self._db.fetch(
            """
            SELECT * FROM content_items
            WHERE is_analyzed = FALSE
            ORDER BY created_at
            LIMIT $1
            """,
            limit,
        )
        return [_record_to_item(r) for r in rows]

    async def mark_analyzed(
        self,
        content_id: int,
        score: float,
        label: str,
        confidence: float | None,
    ) -> None:
        await self._db.execute(_MARK_ANALYZED_SQL, content_id, score, label, confidence)

    async def list_recent(
        self,
        since: datetime,
        content_type: str | None = None,
        limit: int = 100,
    ) -> list[ContentItem]:
        """Content published since a timestamp, newest first."""
        rows = await self._db.fetch(
            """
            SELECT * FROM content_items
            WHERE published_at >= $1
              AND ($2::text IS NULL OR content_type = $2)
            ORDER BY published_at DESC
            LIMIT $3
            """,
            since, content_type, limit,
        )
        return [_record_to_item(r) for r in rows]
