"""
Invoice stock intake: scanned invoice items -> category/unit/volume detection -> duplicate matching -> review -> commit.
"""

from .categories import classify, category_label
from .units import detect_unit, detect_volume
from .matching import normalize_name, similarity, find_best_match, score_best_match
from .pipeline import prepare_review, commit_review, run_on_folder
from .models import CategoryTag, UnitOfMeasure, LineItem, ScannedInvoice, CatalogProduct, MatchResult, ReviewItem

__all__ = [
    "classify",
    "category_label",
    "detect_unit",
    "detect_volume",
    "normalize_name",
    "similarity",
    "find_best_match",
    "score_best_match",
    "prepare_review",
    "commit_review",
    "run_on_folder",
    "CategoryTag",
    "UnitOfMeasure",
    "LineItem",
    "ScannedInvoice",
    "CatalogProduct",
    "MatchResult",
    "ReviewItem",
]
