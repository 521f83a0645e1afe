"""Schema definitions for keywords and keyword-content links."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ExtractedKeyword:
    """
    A relevant keyword found in one document.

    Attributes:
        text: Normalized keyword (lowercase, punctuation stripped).
        frequency: Occurrences within the document.
        relevance: Content-local relevance score in [0, 1].
        context: Text surrounding the first occurrence.
        is_crypto: Whether the keyword matched the crypto vocabulary.
    """

    text: str
    frequency: int
    relevance: float
    context: str = ""
    is_crypto: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "frequency": self.frequency,
            "relevance": self.relevance,
            "context": self.context,
            "is_crypto": self.is_crypto,
        }


@dataclass
class KeywordAnalysis:
    """Full result of tokenizing one document."""

    frequencies: dict[str, int] = field(default_factory=dict)
    relevant: list[str] = field(default_factory=list)
    crypto: list[str] = field(default_factory=list)


@dataclass
class Keyword:
    """A globally tracked keyword."""

    normalized: str
    category: str = "general"
    frequency: int = 0
    average_sentiment: float = 0.0
    relevance_score: float = 0.0
    is_active: bool = True
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "keyword": self.normalized,
            "category": self.category,
            "frequency": self.frequency,
            "average_sentiment": self.average_sentiment,
            "relevance_score": self.relevance_score,
            "is_active": self.is_active,
        }


@dataclass
class KeywordLink:
    """Link between a keyword and one content item."""

    keyword_id: int
    content_id: int
    content_type: str
    frequency: int
    relevance_score: float
    sentiment_score: float | None = None
    context: str = ""
    keyword: str = ""
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword_id": self.keyword_id,
            "keyword": self.keyword,
            "content_id": self.content_id,
            "content_type": self.content_type,
            "frequency": self.frequency,
            "relevance_score": self.relevance_score,
            "sentiment_score": self.sentiment_score,
            "context": self.context,
        }
