"""
Deduplicating ingestor.

Turns canonical items into stored content items, exactly once per
(content_type, external_id). Items already stored are skipped, invalid
items are counted and dropped, and a persistence failure on one item does
not stop the rest of the batch.
"""

import logging
from dataclasses import dataclass, field

from crypto_ingest.content.repository import ContentRepository
from crypto_ingest.content.schemas import ContentItem, categorize_content, count_words
from crypto_ingest.ingestion.errors import PersistenceError, ValidationError
from crypto_ingest.ingestion.schemas import CanonicalItem
from crypto_ingest.sources.schemas import Source

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGES = 20


@dataclass
class IngestResult:
    """Outcome of ingesting one batch of items from a source."""

    created: list[ContentItem] = field(default_factory=list)
    skipped: int = 0
    invalid: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    def add_error(self, message: str) -> None:
        self.errors += 1
        if len(self.error_messages) < MAX_ERROR_MESSAGES:
            self.error_messages.append(message)


def validate_item(item: CanonicalItem) -> None:
    """Raise ValidationError if an item cannot be stored."""
    if not item.external_id or not item.external_id.strip():
        raise ValidationError("item has no external id")
    if not (item.title or item.body):
        raise ValidationError(f"item {item.external_id} has neither title nor body")


def to_content_item(source: Source, item: CanonicalItem) -> ContentItem:
    """Build the stored representation of a canonical item."""
    return ContentItem(
        content_type=source.source_type,
        external_id=item.external_id,
        source_id=source.id,
        title=item.title,
        body=item.body,
        summary=item.summary,
        url=item.url,
        author=item.author,
        tags=item.tags,
        published_at=item.published_at,
        word_count=count_words(item.body),
        category=categorize_content(item.body),
    )


class DeduplicatingIngestor:
    """Stores canonical items, skipping ones already seen."""

    def __init__(self, repository: ContentRepository) -> None:
        self._repo = repository

    async def ingest(self, source: Source, items: list[CanonicalItem]) -> IngestResult:
        """
        Ingest a batch of items in order.

        Args:
            source: Source the items were crawled from
            items: Normalized items, in payload order

        Returns:
            IngestResult with the newly created items and per-outcome counts
        """
        result = IngestResult()

        for item in items:
            try:
                validate_item(item)
            except ValidationError as e:
                result.invalid += 1
                logger.debug(f"Dropping invalid item from {source.label}: {e}")
                continue

            try:
                if await self._repo.exists(source.source_type, item.external_id):
                    result.skipped += 1
                    continue

                stored = await self._repo.insert(to_content_item(source, item))
            except PersistenceError as e:
                result.add_error(f"{item.external_id}: {e}")
                logger.error(f"Failed to store item {item.external_id} from {source.label}: {e}")
                continue

            if stored is None:
                result.skipped += 1
            else:
                result.created.append(stored)

        logger.info(
            f"Ingested {source.label}: created={result.created_count} "
            f"skipped={result.skipped} invalid={result.invalid} errors={result.errors}"
        )
        return result
