"""Tests for product-name normalization, similarity and best-match resolution."""

import pytest

from stock_intake.matching import (
    MATCH_THRESHOLD,
    find_best_match,
    normalize_name,
    score_best_match,
    search_keywords,
    similarity,
)
from stock_intake.models import CatalogProduct


def _product(pid: int, name: str) -> CatalogProduct:
    return CatalogProduct(id=pid, name=name)


NAMES = [
    "",
    "Óleo-Lubrificante  5W30!",
    "Filtro_de_Ar  Condicionado",
    "a ! b",
    "  Çà é ü  ",
    "ARLA-32 (galão 20L)",
    "日本語",
    "\tmulti\nline\r\ntext ",
]


class TestNormalizeName:
    def test_example(self):
        assert normalize_name("Óleo-Lubrificante  5W30!") == "oleo lubrificante 5w30"

    def test_separators_become_spaces(self):
        assert normalize_name("Filtro_de-Ar") == "filtro de ar"

    def test_diacritics_stripped(self):
        assert normalize_name("Graxa Çà é ü") == "graxa ca e u"

    def test_punctuation_removed(self):
        assert normalize_name("ARLA-32 (galão 20L)") == "arla 32 galao 20l"

    def test_no_double_spaces_after_stripping(self):
        assert normalize_name("a ! b") == "a b"

    def test_empty_and_none(self):
        assert normalize_name("") == ""
        assert normalize_name(None) == ""

    def test_non_latin_text_is_dropped(self):
        assert normalize_name("日本語") == ""

    @pytest.mark.parametrize("name", NAMES)
    def test_idempotent(self, name):
        once = normalize_name(name)
        assert normalize_name(once) == once


class TestSimilarity:
    def test_identical_is_one(self):
        assert similarity("Filtro Wega WO123", "FILTRO WEGA WO123!") == 1.0

    @pytest.mark.parametrize("name", [n for n in NAMES if normalize_name(n)])
    def test_self_similarity(self, name):
        assert similarity(name, name) == 1.0

    def test_empty_side_is_zero(self):
        assert similarity("Filtro", "") == 0.0
        assert similarity(None, "Filtro") == 0.0

    def test_containment(self):
        score = similarity("Mobil Super 5W30", "Oleo Mobil Super 5W30 1L")
        assert score == pytest.approx(len("mobil super 5w30") / len("oleo mobil super 5w30 1l"))
        assert score >= MATCH_THRESHOLD

    def test_word_overlap(self):
        # filtro, wega, wo123 found among the 5 words of the longer name
        score = similarity("Filtro Wega WO123", "Filtro de Oleo Wega WO123 Original")
        assert score == pytest.approx(3 / 5)

    def test_partial_word_match(self):
        # 'oleo' is contained in 'oleos'
        assert similarity("oleo motor", "oleos motor sintetico") == pytest.approx(2 / 3)

    def test_short_words_ignored(self):
        assert similarity("de da do", "do de um") == 0.0

    def test_unrelated(self):
        assert similarity("Pastilha de Freio", "Filtro de Oleo Wega") == 0.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Mobil Super 5W30", "Oleo Mobil Super 5W30 1L"),
            ("Filtro Wega WO123", "Filtro de Oleo Wega WO123 Original"),
            ("Graxa azul", "Graxa de chassis azul 500g"),
            ("abc", ""),
        ],
    )
    def test_symmetric(self, a, b):
        assert similarity(a, b) == similarity(b, a)

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Filtro", "Filtro de ar"),
            ("oleo oleo oleo", "oleo"),
            ("x", "y"),
            ("óleo 5w30", "ÓLEO 5W-30"),
        ],
    )
    def test_bounded(self, a, b):
        assert 0.0 <= similarity(a, b) <= 1.0


class TestBestMatch:
    def test_example(self):
        wega = _product(1, "Filtro de Oleo Wega WO123 Original")
        brake = _product(2, "Pastilha de Freio")
        assert find_best_match("Filtro Wega WO123", [wega, brake]) is wega

    def test_below_threshold_is_none(self):
        candidates = [_product(1, "Filtro de Ar Tecfil"), _product(2, "Pastilha de Freio")]
        result = score_best_match("Filtro Wega WO123", candidates)
        assert result.product is None
        assert 0.0 < result.score < MATCH_THRESHOLD
        assert find_best_match("Filtro Wega WO123", candidates) is None

    def test_picks_highest_score(self):
        weak = _product(1, "Oleo Mobil 20W50 Mineral Balde")
        strong = _product(2, "Oleo Mobil Super 5W30 1L")
        assert find_best_match("Mobil Super 5W30", [weak, strong]) is strong

    def test_tie_keeps_first(self):
        a = _product(1, "Graxa Azul")
        b = _product(2, "graxa-azul")
        result = score_best_match("Graxa Azul", [a, b])
        assert result.product is a
        assert result.score == 1.0

    def test_never_returns_below_threshold(self):
        query = "Filtro Wega WO123"
        weak = _product(1, "Filtro de Ar Tecfil")
        strong = _product(2, "Filtro de Oleo Wega WO123 Original")
        assert 0.0 < similarity(query, weak.name) < MATCH_THRESHOLD
        assert similarity(query, strong.name) >= MATCH_THRESHOLD

        result = score_best_match(query, [weak, strong])
        assert result.product is strong
        assert result.score >= MATCH_THRESHOLD
        assert score_best_match(query, [weak]).product is None

    @pytest.mark.parametrize("query", [n for n in NAMES if n])
    def test_any_returned_product_reaches_threshold(self, query):
        candidates = [_product(i, n) for i, n in enumerate(NAMES + ["Filtro de ar", "Oleo 5W30"])]
        result = score_best_match(query, candidates)
        assert result.product is not None
        assert similarity(query, result.product.name) >= MATCH_THRESHOLD

    def test_custom_threshold(self):
        candidates = [_product(1, "Filtro de Ar Tecfil")]
        assert find_best_match("Filtro Wega", candidates, threshold=0.9) is None
        assert find_best_match("Filtro Wega", candidates, threshold=0.3) is candidates[0]

    def test_no_candidates(self):
        result = score_best_match("Filtro", [])
        assert result.product is None
        assert result.score == 0.0


class TestSearchKeywords:
    def test_first_three_long_words(self):
        assert search_keywords("Óleo Mobil Super 5W30 1L") == "oleo mobil super"

    def test_short_words_skipped(self):
        assert search_keywords("Filtro de Ar Wega WO123") == "filtro wega wo123"

    def test_empty(self):
        assert search_keywords("") == ""
