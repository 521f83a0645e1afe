"""Tests for frequency-based keyword extraction."""

import pytest

from crypto_ingest.keywords.config import KeywordsConfig
from crypto_ingest.keywords.extractor import (
    KeywordExtractor,
    categorize_keyword,
    extract_context,
    first_occurrence,
    is_crypto_related,
    normalize_keyword,
    relevance_score,
    tokenize,
)


@pytest.fixture
def extractor() -> KeywordExtractor:
    return KeywordExtractor(KeywordsConfig())


class TestAnalyze:
    """Tests for tokenizing and filtering."""

    def test_bitcoin_kept_stopword_excluded(self, extractor: KeywordExtractor) -> None:
        text = " ".join(["bitcoin"] * 5 + ["the"] * 20)

        analysis = extractor.analyze(text)

        assert analysis.frequencies["bitcoin"] == 5
        assert "the" not in analysis.frequencies
        assert analysis.relevant == ["bitcoin"]
        assert analysis.crypto == ["bitcoin"]

    def test_single_occurrence_not_relevant(self, extractor: KeywordExtractor) -> None:
        analysis = extractor.analyze("ethereum solana solana")
        assert analysis.relevant == ["solana"]
        assert analysis.frequencies["ethereum"] == 1

    def test_short_and_numeric_tokens_filtered(self, extractor: KeywordExtractor) -> None:
        analysis = extractor.analyze("ai ai 2025 2025 etf etf")

        assert "ai" not in analysis.frequencies
        assert "2025" not in analysis.frequencies
        # Kept as a token but too short to be a relevant keyword
        assert analysis.frequencies["etf"] == 2
        assert "etf" not in analysis.relevant

    def test_ranked_by_frequency_then_first_occurrence(
        self, extractor: KeywordExtractor
    ) -> None:
        analysis = extractor.analyze(
            "solana cardano solana cardano ripple ripple ripple"
        )
        assert analysis.relevant == ["ripple", "solana", "cardano"]

    def test_punctuation_splits_tokens(self) -> None:
        assert tokenize("Bitcoin's price—up! BTC/USD") == [
            "bitcoin", "s", "price", "up", "btc", "usd",
        ]


class TestExtract:
    """Tests for scored keyword extraction."""

    def test_bitcoin_scenario_scores(self, extractor: KeywordExtractor) -> None:
        text = " ".join(["bitcoin"] * 5 + ["the"] * 20)

        keywords = extractor.extract(text)

        assert len(keywords) == 1
        kw = keywords[0]
        assert kw.text == "bitcoin"
        assert kw.frequency == 5
        assert kw.is_crypto
        # 0.5 * 0.5 (frequency) + 0.2 * 1.0 (position) + 0.3 (crypto)
        assert kw.relevance == pytest.approx(0.75)

    def test_title_is_included(self, extractor: KeywordExtractor) -> None:
        keywords = extractor.extract("Analysts expect more staking.", title="Staking rewards")

        assert [k.text for k in keywords] == ["staking"]
        assert keywords[0].frequency == 2

    def test_max_keywords(self) -> None:
        extractor = KeywordExtractor(KeywordsConfig(max_keywords=2))
        text = "alpha alpha bravo bravo charlie charlie delta delta"

        assert len(extractor.extract(text)) == 2

    def test_no_keywords_in_empty_text(self, extractor: KeywordExtractor) -> None:
        assert extractor.extract("") == []


class TestScoring:
    """Tests for relevance, context and categories."""

    def test_relevance_capped(self) -> None:
        text = "bitcoin " * 50
        assert relevance_score("bitcoin", text, 50, True) == pytest.approx(1.0)

    def test_relevance_absent_keyword_has_no_position_score(self) -> None:
        assert relevance_score("solana", "nothing here", 10, False) == pytest.approx(0.5)

    def test_later_occurrence_scores_lower(self) -> None:
        text = "cardano " + "x " * 50 + "polkadot"
        early = relevance_score("cardano", text, 2, False)
        late = relevance_score("polkadot", text, 2, False)
        assert early > late

    def test_context_truncated_both_sides(self) -> None:
        text = "a" * 150 + " bitcoin " + "b" * 150

        context = extract_context(text, "bitcoin", radius=100)

        assert context.startswith("...")
        assert context.endswith("...")
        assert "bitcoin" in context
        assert len(context) == 100 + len("bitcoin") + 100 + 6

    def test_context_short_text(self) -> None:
        assert extract_context("Bitcoin rallies", "bitcoin") == "Bitcoin rallies"

    def test_context_missing(self) -> None:
        assert extract_context("nothing", "bitcoin") == ""

    def test_first_occurrence_skips_partial_words(self) -> None:
        text = "Bitcoin and altcoins rallied; one coin lagged"
        assert first_occurrence(text, "coin") == text.index(" coin ") + 1
        assert first_occurrence(text, "Bitcoin") == 0
        assert first_occurrence("bitcoins only", "coin") == -1

    def test_first_occurrence_respects_punctuation_boundaries(self) -> None:
        assert first_occurrence("(coin) rises", "coin") == 1

    def test_context_centred_on_whole_token(self) -> None:
        text = "bitcoin " + "x " * 60 + "coin"
        context = extract_context(text, "coin", radius=10)
        assert context.endswith("coin")
        assert not context.startswith("bitcoin")

    def test_partial_word_gets_no_position_score(self) -> None:
        assert relevance_score("coin", "bitcoin bitcoin", 2, True) == pytest.approx(0.4)

    @pytest.mark.parametrize(
        "keyword,category",
        [
            ("bitcoin", "crypto"),
            ("volatility", "market"),
            ("validator", "technology"),
            ("regulation", "regulation"),
            ("weather", "general"),
        ],
    )
    def test_categories(self, keyword: str, category: str) -> None:
        assert categorize_keyword(keyword) == category

    def test_crypto_vocabulary_substring_match(self) -> None:
        assert is_crypto_related("bitcoins")
        assert is_crypto_related("stablecoin")
        assert not is_crypto_related("weather")

    def test_normalize_keyword(self) -> None:
        assert normalize_keyword("  Bitcoin!! ") == "bitcoin"
