"""
Sentiment lexicon for crypto market text.

Term weights cover the market vocabulary that carries direction (rally,
dump, hack, ...). Emoji weights cover the symbols that crypto social media
uses the same way. Positive weights are bullish, negative are bearish.

Usage:
    from crypto_ingest.sentiment.lexicon import compute_emoji_modifier

    modifier, breakdown = compute_emoji_modifier("BTC 🚀🚀📈")  # ~0.5
"""

import re

TERM_SENTIMENT: dict[str, float] = {
    # Bullish
    "bullish": 0.6,
    "rally": 0.5,
    "rallies": 0.5,
    "surge": 0.5,
    "surges": 0.5,
    "soar": 0.5,
    "soars": 0.5,
    "gain": 0.3,
    "gains": 0.3,
    "breakout": 0.4,
    "adoption": 0.3,
    "approval": 0.4,
    "approved": 0.4,
    "partnership": 0.3,
    "upgrade": 0.2,
    "record": 0.2,
    "growth": 0.3,
    "recovery": 0.3,
    "rebound": 0.3,
    "moon": 0.4,
    "pump": 0.3,
    "inflows": 0.3,
    "accumulation": 0.2,
    "launch": 0.1,
    # Bearish
    "bearish": -0.6,
    "crash": -0.6,
    "crashes": -0.6,
    "plunge": -0.5,
    "plunges": -0.5,
    "dump": -0.4,
    "selloff": -0.5,
    "decline": -0.3,
    "drop": -0.3,
    "drops": -0.3,
    "loss": -0.3,
    "losses": -0.3,
    "hack": -0.6,
    "hacked": -0.6,
    "exploit": -0.5,
    "scam": -0.6,
    "fraud": -0.6,
    "lawsuit": -0.4,
    "ban": -0.5,
    "banned": -0.5,
    "crackdown": -0.5,
    "liquidation": -0.4,
    "liquidations": -0.4,
    "outflows": -0.3,
    "fear": -0.3,
    "bankruptcy": -0.6,
    "rugpull": -0.6,
}

# Terms that flip the next sentiment-bearing word
NEGATIONS = frozenset({"not", "no", "never", "without", "isn't", "wasn't", "won't", "don't"})

EMOJI_SENTIMENT: dict[str, float] = {
    "🚀": 0.3,
    "📈": 0.2,
    "💎": 0.1,
    "🙌": 0.1,
    "💰": 0.15,
    "🤑": 0.15,
    "🌙": 0.15,
    "🔥": 0.15,
    "🟢": 0.1,
    "🐂": 0.2,
    "💯": 0.1,
    "📉": -0.2,
    "💩": -0.2,
    "🤡": -0.1,
    "❌": -0.2,
    "🔻": -0.15,
    "🩸": -0.15,
    "💀": -0.2,
    "🪦": -0.25,
    "🔴": -0.1,
    "😱": -0.15,
    "🐻": -0.2,
}

_EMOJI_PATTERN = re.compile(
    "["
    "\U0001F300-\U0001F5FF"  # Symbols & pictographs
    "\U0001F600-\U0001F64F"  # Emoticons
    "\U0001F680-\U0001F6FF"  # Transport & map symbols
    "\U0001F900-\U0001F9FF"  # Supplemental symbols
    "\U0001FA70-\U0001FAFF"  # Symbols extended-A
    "\U00002600-\U000026FF"  # Misc symbols
    "\U00002700-\U000027BF"  # Dingbats
    "]+",
    flags=re.UNICODE,
)

_WORD_RE = re.compile(r"[a-z']+")


def extract_emojis(text: str) -> list[str]:
    """All single emoji characters found in ``text``."""
    if not text:
        return []
    return [ch for match in _EMOJI_PATTERN.findall(text) for ch in match]


def compute_emoji_modifier(
    text: str, max_modifier: float = 0.5
) -> tuple[float, dict[str, float]]:
    """
    Aggregate emoji sentiment of ``text``.

    Returns:
        (modifier clamped to [-max_modifier, max_modifier], per-emoji contributions)
    """
    if max_modifier < 0:
        raise ValueError("max_modifier must be non-negative")

    breakdown: dict[str, float] = {}
    for emoji in extract_emojis(text):
        if emoji in EMOJI_SENTIMENT:
            breakdown[emoji] = breakdown.get(emoji, 0.0) + EMOJI_SENTIMENT[emoji]

    if not breakdown:
        return 0.0, {}

    raw = sum(breakdown.values())
    return max(-max_modifier, min(max_modifier, raw)), breakdown


def score_terms(text: str) -> tuple[list[float], list[str]]:
    """
    Weights of the sentiment-bearing words in ``text``.

    A negation directly before a word flips its weight.

    Returns:
        (weights in order of appearance, matched terms in order of first appearance)
    """
    weights: list[float] = []
    terms: list[str] = []
    negate = False
    for word in _WORD_RE.findall(text.lower()):
        if word in NEGATIONS:
            negate = True
            continue
        weight = TERM_SENTIMENT.get(word)
        if weight is not None:
            weights.append(-weight if negate else weight)
            if word not in terms:
                terms.append(word)
        negate = False
    return weights, terms
