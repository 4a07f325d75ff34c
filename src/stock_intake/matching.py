"""
Fuzzy product-name matching against the existing catalog.

The score is a cheap containment + word-overlap heuristic tuned for short
product names with brand/size tokens in varying order, not an edit distance.
MATCH_THRESHOLD was tuned against this exact scoring function.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional

from .models import CatalogProduct, MatchResult

MATCH_THRESHOLD = 0.6

_SEPARATORS = re.compile(r"[-_]")
_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9 ]")

# Words this short are noise for word overlap ("de", "1l", "kg")
MIN_WORD_LEN = 3


def normalize_name(name: Optional[str]) -> str:
    """
    Canonical comparison form: lowercase ASCII alphanumerics and single spaces.
    'Óleo-Lubrificante  5W30!' -> 'oleo lubrificante 5w30'
    """
    s = str(name or "").lower()
    s = "".join(ch for ch in unicodedata.normalize("NFD", s) if not unicodedata.combining(ch))
    s = _SEPARATORS.sub(" ", s)
    s = _WHITESPACE.sub(" ", s)
    s = _NON_ALNUM.sub("", s)
    # stripping punctuation can leave double spaces behind ("a ! b")
    s = _WHITESPACE.sub(" ", s)
    return s.strip()


def _words(normalized: str) -> list[str]:
    return [w for w in normalized.split(" ") if len(w) >= MIN_WORD_LEN]


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Similarity in [0, 1] between two product names."""
    s1 = normalize_name(a)
    s2 = normalize_name(b)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    # Containment: "mobil super 5w30" inside "oleo mobil super 5w30 1l"
    if s1 in s2 or s2 in s1:
        shorter, longer = sorted((s1, s2), key=len)
        return len(shorter) / len(longer)

    words1 = _words(s1)
    words2 = _words(s2)
    if not words1 or not words2:
        return 0.0

    matching = sum(
        1 for w1 in words1 if any(w1 == w2 or w1 in w2 or w2 in w1 for w2 in words2)
    )
    return min(1.0, matching / max(len(words1), len(words2)))


def score_best_match(
    description: Optional[str],
    candidates: Iterable[CatalogProduct],
    threshold: float = MATCH_THRESHOLD,
) -> MatchResult:
    """
    Scan candidates for the most similar name. The product is set only when the
    best score reaches threshold; equal scores keep the earlier candidate.
    """
    best: Optional[CatalogProduct] = None
    best_score = 0.0
    for product in candidates:
        score = similarity(description, product.name)
        if score > best_score:
            best_score = score
            best = product
    if best is None or best_score < threshold:
        return MatchResult(product=None, score=best_score)
    return MatchResult(product=best, score=best_score)


def find_best_match(
    description: Optional[str],
    candidates: Iterable[CatalogProduct],
    threshold: float = MATCH_THRESHOLD,
) -> Optional[CatalogProduct]:
    """Most similar existing product, or None (treat as a new product)."""
    return score_best_match(description, candidates, threshold).product


def search_keywords(description: Optional[str], limit: int = 3, min_len: int = 4) -> str:
    """Keywords for the catalog pre-filter search: first `limit` normalized words of at least min_len chars."""
    words = [w for w in normalize_name(description).split(" ") if len(w) >= min_len]
    return " ".join(words[:limit])
