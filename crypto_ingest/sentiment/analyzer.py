"""
Sentiment analyzers.

The enricher depends only on the SentimentAnalyzer protocol, so any model
(hosted LLM, local classifier) can be plugged in. LexiconSentimentAnalyzer
is the built-in default and needs no network or model weights.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from crypto_ingest.sentiment.config import SentimentConfig
from crypto_ingest.sentiment.lexicon import compute_emoji_modifier, score_terms


@dataclass
class SentimentResult:
    """
    Sentiment of one text.

    Attributes:
        score: Polarity in [-1, 1].
        label: negative, neutral or positive.
        confidence: Confidence in [0, 1].
        keywords: Terms that drove the score.
    """

    score: float
    label: str
    confidence: float
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "label": self.label,
            "confidence": self.confidence,
            "keywords": self.keywords,
        }


@runtime_checkable
class SentimentAnalyzer(Protocol):
    """Anything that can score the sentiment of a text."""

    async def analyze(self, text: str) -> SentimentResult: ...


def label_for(score: float, neutral_band: float) -> str:
    if score >= neutral_band:
        return "positive"
    if score <= -neutral_band:
        return "negative"
    return "neutral"


class LexiconSentimentAnalyzer:
    """
    Lexicon and emoji based analyzer for crypto market text.

    The score is the mean weight of the sentiment-bearing terms plus a
    capped emoji modifier, squashed into [-1, 1]. Confidence grows with
    the amount of evidence found.

    Usage:
        analyzer = LexiconSentimentAnalyzer()
        result = await analyzer.analyze("Bitcoin rallies after ETF approval 🚀")
        print(result.label, result.score)
    """

    def __init__(self, config: SentimentConfig | None = None) -> None:
        self._config = config or SentimentConfig()

    def analyze_sync(self, text: str) -> SentimentResult:
        weights, terms = score_terms(text)
        modifier, emojis = compute_emoji_modifier(text, self._config.emoji_max_modifier)

        evidence = len(weights) + len(emojis)
        if evidence == 0:
            return SentimentResult(score=0.0, label="neutral", confidence=0.0)

        raw = (sum(weights) / len(weights) if weights else 0.0) + modifier
        score = round(math.tanh(raw * 2), 4)
        confidence = round(min(1.0, 0.3 + 0.1 * evidence), 4)
        return SentimentResult(
            score=score,
            label=label_for(score, self._config.neutral_band),
            confidence=confidence,
            keywords=terms[: self._config.max_keywords],
        )

    async def analyze(self, text: str) -> SentimentResult:
        return self.analyze_sync(text)
