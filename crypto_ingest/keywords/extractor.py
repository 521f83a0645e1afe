"""
Frequency-based keyword extraction.

Tokenizes a document, filters stopwords and noise, counts token frequency
and scores each relevant keyword by frequency, position of first occurrence
and membership in a crypto vocabulary. Everything here is synchronous and
free of I/O; the linker persists the results.

Usage:
    extractor = KeywordExtractor()
    keywords = extractor.extract("Bitcoin rallies as bitcoin ETF inflows grow", title="BTC")
"""

import re

from crypto_ingest.keywords.config import KeywordsConfig
from crypto_ingest.keywords.schemas import ExtractedKeyword, KeywordAnalysis

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_NUMERIC_RE = re.compile(r"^\d+$")

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "this", "that", "these", "those", "is", "are", "was", "were",
    "be", "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "can", "cannot", "it",
    "its", "he", "she", "they", "we", "you", "i", "me", "him", "her", "them",
    "us", "my", "your", "his", "our", "their", "what", "when", "where", "why",
    "how", "which", "who", "whom", "whose", "all", "any", "some", "no", "not",
    "only", "own", "same", "so", "than", "too", "very", "now", "here", "there",
    "then", "also", "just", "more", "most", "much", "many", "well", "good",
    "new", "old", "first", "last", "long", "great", "little", "high", "right",
    "left", "big", "small",
})

# Substring match in either direction earns the relevance boost
CRYPTO_VOCABULARY = (
    "bitcoin", "btc", "ethereum", "eth", "crypto", "cryptocurrency", "blockchain",
    "defi", "nft", "altcoin", "stablecoin", "mining", "wallet", "exchange",
    "token", "coin", "satoshi", "wei", "gwei", "dapp", "dao", "yield",
    "farming", "staking", "liquidity", "protocol", "smart", "contract",
    "binance", "coinbase", "kraken", "bybit", "okx", "kucoin",
    "bull", "bear", "hodl", "fomo", "fud", "pump", "dump", "moon",
    "diamond", "hands", "paper", "ape", "degen", "ngmi", "wagmi",
)

# Checked in order; a keyword containing any marker gets that category
KEYWORD_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("crypto", (
        "bitcoin", "btc", "ethereum", "eth", "crypto", "cryptocurrency",
        "blockchain", "defi", "nft", "altcoin", "stablecoin", "mining",
        "wallet", "exchange", "token", "coin", "satoshi", "wei", "gwei",
    )),
    ("market", (
        "price", "market", "trading", "bull", "bear", "pump", "dump",
        "volume", "capitalization", "volatility", "trend", "analysis",
        "support", "resistance", "breakout", "correction", "rally",
    )),
    ("technology", (
        "protocol", "consensus", "proof", "stake", "work", "hash",
        "smart", "contract", "dapp", "layer", "scaling", "interoperability",
        "decentralized", "distributed", "node", "validator",
    )),
    ("regulation", (
        "regulation", "legal", "compliance", "law", "government",
        "sec", "cftc", "treasury", "ban", "approve", "legislation",
        "policy", "cbdc", "institutional", "etf",
    )),
)


def normalize_keyword(keyword: str) -> str:
    """Lowercase, trim and strip punctuation."""
    return _PUNCTUATION_RE.sub("", keyword.lower().strip())


def tokenize(text: str) -> list[str]:
    """Lowercase, replace punctuation with spaces and split on whitespace."""
    return _PUNCTUATION_RE.sub(" ", text.lower()).split()


def is_crypto_related(keyword: str) -> bool:
    return any(term in keyword or keyword in term for term in CRYPTO_VOCABULARY)


def categorize_keyword(keyword: str) -> str:
    keyword = keyword.lower()
    for category, markers in KEYWORD_CATEGORIES:
        if any(marker in keyword for marker in markers):
            return category
    return "general"


def first_occurrence(text: str, keyword: str) -> int:
    """Index of the first whole-token match of ``keyword`` in ``text``, or -1."""
    match = re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", text, re.IGNORECASE)
    return match.start() if match else -1


def relevance_score(keyword: str, text: str, frequency: int, is_crypto: bool) -> float:
    """
    Content-local relevance of a keyword.

    0.5 * min(freq/10, 1) + 0.2 * position + 0.3 crypto boost, capped at 1.0.
    Position is 1 - first_index/len(text), floored at 0; 0 when absent.
    """
    frequency_score = min(frequency / 10, 1.0)
    first = first_occurrence(text, keyword)
    position_score = max(0.0, 1 - first / len(text)) if first != -1 and text else 0.0
    crypto_boost = 0.3 if is_crypto else 0.0
    return min(frequency_score * 0.5 + position_score * 0.2 + crypto_boost, 1.0)


def extract_context(text: str, keyword: str, radius: int = 100) -> str:
    """Text around the first whole-token ``keyword``, with ``...`` where truncated."""
    index = first_occurrence(text, keyword)
    if index == -1:
        return ""

    start = max(0, index - radius)
    end = min(len(text), index + len(keyword) + radius)
    context = text[start:end]
    if start > 0:
        context = "..." + context
    if end < len(text):
        context = context + "..."
    return context.strip()


class KeywordExtractor:
    """Extracts and scores relevant keywords from a document."""

    def __init__(self, config: KeywordsConfig | None = None) -> None:
        self._config = config or KeywordsConfig()

    @property
    def config(self) -> KeywordsConfig:
        return self._config

    def _keep_token(self, token: str) -> bool:
        return (
            len(token) >= self._config.min_token_length
            and token not in STOPWORDS
            and not _NUMERIC_RE.match(token)
        )

    def analyze(self, text: str) -> KeywordAnalysis:
        """Count filtered tokens and pick the relevant ones.

        Relevant keywords are ranked by frequency, ties broken by first
        occurrence in the text.
        """
        frequencies: dict[str, int] = {}
        for token in tokenize(text):
            if self._keep_token(token):
                frequencies[token] = frequencies.get(token, 0) + 1

        relevant = [
            token
            for token, freq in sorted(frequencies.items(), key=lambda kv: -kv[1])
            if freq >= self._config.min_frequency
            and len(token) >= self._config.min_keyword_length
        ]
        return KeywordAnalysis(
            frequencies=frequencies,
            relevant=relevant,
            crypto=[k for k in relevant if is_crypto_related(k)],
        )

    def extract(self, text: str, title: str | None = None) -> list[ExtractedKeyword]:
        """
        Extract up to ``max_keywords`` scored keywords.

        Args:
            text: Document body
            title: Optional title, prepended to the body

        Returns:
            Keywords in rank order
        """
        full_text = f"{title} {text}" if title else text
        analysis = self.analyze(full_text)

        keywords: list[ExtractedKeyword] = []
        for token in analysis.relevant[: self._config.max_keywords]:
            frequency = analysis.frequencies[token]
            is_crypto = is_crypto_related(token)
            keywords.append(
                ExtractedKeyword(
                    text=token,
                    frequency=frequency,
                    relevance=relevance_score(token, full_text, frequency, is_crypto),
                    context=extract_context(full_text, token, self._config.context_radius),
                    is_crypto=is_crypto,
                )
            )
        return keywords
