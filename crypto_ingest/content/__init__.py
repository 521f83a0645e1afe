"""Content: stored items produced by crawling."""

from crypto_ingest.content.repository import ContentRepository
from crypto_ingest.content.schemas import ContentItem, categorize_content, count_words

__all__ = ["ContentItem", "ContentRepository", "categorize_content", "count_words"]
