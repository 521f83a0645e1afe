"""Tests for the sentiment lexicon helpers."""

import pytest

from crypto_ingest.sentiment.lexicon import (
    compute_emoji_modifier,
    extract_emojis,
    score_terms,
)


class TestExtractEmojis:
    def test_finds_each_emoji(self) -> None:
        assert extract_emojis("gm 🚀📈 wagmi") == ["🚀", "📈"]

    def test_empty(self) -> None:
        assert extract_emojis("") == []
        assert extract_emojis("no symbols here") == []


class TestEmojiModifier:
    """Tests for aggregate emoji sentiment."""

    def test_bullish(self) -> None:
        modifier, breakdown = compute_emoji_modifier("BTC 🚀📈")
        assert modifier == pytest.approx(0.5)
        assert set(breakdown) == {"🚀", "📈"}

    def test_clamped(self) -> None:
        modifier, breakdown = compute_emoji_modifier("🚀🚀🚀", max_modifier=0.5)
        assert modifier == 0.5
        assert breakdown["🚀"] == pytest.approx(0.9)

    def test_bearish(self) -> None:
        modifier, _ = compute_emoji_modifier("rekt 📉💀")
        assert modifier == pytest.approx(-0.4)

    def test_unknown_emojis_ignored(self) -> None:
        assert compute_emoji_modifier("☕") == (0.0, {})

    def test_negative_cap_rejected(self) -> None:
        with pytest.raises(ValueError):
            compute_emoji_modifier("🚀", max_modifier=-1)


class TestScoreTerms:
    def test_weights_in_order(self) -> None:
        weights, terms = score_terms("Bitcoin rallies after crash, rallies again")
        assert weights == [0.5, -0.6, 0.5]
        assert terms == ["rallies", "crash"]

    def test_negation_flips_next_term(self) -> None:
        weights, _ = score_terms("This is not bullish")
        assert weights == [-0.6]

    def test_negation_cleared_by_neutral_word(self) -> None:
        weights, _ = score_terms("not really a big rally")
        assert weights == [0.5]
