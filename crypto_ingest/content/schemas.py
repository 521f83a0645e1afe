"""Data models for stored content items."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_TAG_RE = re.compile(r"<[^>]*>")

# Checked in order; the first group with a hit wins
CONTENT_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("market-analysis", ("price", "market", "trading")),
    ("regulation", ("regulation", "legal", "government")),
    ("technology", ("technology", "blockchain", "protocol")),
    ("adoption", ("adoption", "institutional", "mainstream")),
)


def categorize_content(body: str) -> str:
    """Coarse category of a content body by substring match."""
    text = body.lower()
    for category, markers in CONTENT_CATEGORIES:
        if any(marker in text for marker in markers):
            return category
    return "general"


def count_words(body: str) -> int:
    """Whitespace-delimited word count, ignoring any leftover markup."""
    return len(_TAG_RE.sub("", body).split())


@dataclass
class ContentItem:
    """A persisted content item.

    Unique per (content_type, external_id); content_type equals the
    source type it was crawled from. Sentiment fields stay empty until
    the enrichment worker analyses the item.
    """

    content_type: str
    external_id: str
    source_id: int | None
    title: str = ""
    body: str = ""
    summary: str | None = None
    url: str | None = None
    author: str | None = None
    tags: list[str] = field(default_factory=list)
    published_at: datetime | None = None
    word_count: int = 0
    category: str = "general"
    sentiment_score: float | None = None
    sentiment_label: str | None = None
    confidence_score: float | None = None
    is_analyzed: bool = False
    analyzed_at: datetime | None = None
    id: int | None = None
    created_at: datetime | None = None

    @property
    def text(self) -> str:
        """Title and body, the text keywords are extracted from."""
        if self.title and self.body:
            return f"{self.title}\n\n{self.body}"
        return self.title or self.body

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content_type": self.content_type,
            "external_id": self.external_id,
            "source_id": self.source_id,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "tags": self.tags,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "word_count": self.word_count,
            "category": self.category,
            "sentiment_score": self.sentiment_score,
            "sentiment_label": self.sentiment_label,
            "is_analyzed": self.is_analyzed,
        }
