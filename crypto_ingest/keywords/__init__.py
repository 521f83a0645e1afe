"""Keywords: extraction, linking to content, analytics."""

from crypto_ingest.keywords.config import KeywordsConfig
from crypto_ingest.keywords.extractor import KeywordExtractor
from crypto_ingest.keywords.repository import KeywordRepository
from crypto_ingest.keywords.schemas import ExtractedKeyword, Keyword, KeywordLink
from crypto_ingest.keywords.service import KeywordLinker, KeywordService

__all__ = [
    "ExtractedKeyword",
    "Keyword",
    "KeywordExtractor",
    "KeywordLink",
    "KeywordLinker",
    "KeywordRepository",
    "KeywordService",
    "KeywordsConfig",
]
