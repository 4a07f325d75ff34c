"""
Unit of measure and package volume detection for scanned invoice items.

Policy:
1. Viscosity grade (5W30, 15W-40) in the description: lubricant, always sold by the liter
2. Liter quantity in the description (5L, 1 litro): LITER
3. OCR unit column (LT, KG, UN, PC, ...) mapped through UNIT_HINT_CODES / UNIT_HINT_FRAGMENTS
4. "kg" / "quilo" in the description: KILOGRAM
5. Anything else: UNIT

Volumes are liters (or kilograms) per package. Milliliters and grams are scaled
down by 1000. No declared volume is None, never a silent 1, except for lubricants.
"""
from __future__ import annotations

import math
import re
from typing import Optional

from .models import UnitOfMeasure

VISCOSITY_PATTERN = re.compile(r"\d+w-?\d+", re.IGNORECASE)
LITER_WORD = re.compile(r"\d+\s*l\b", re.IGNORECASE)

# Exact OCR unit codes
UNIT_HINT_CODES = {
    "L": UnitOfMeasure.LITER,
    "LT": UnitOfMeasure.LITER,
    "KG": UnitOfMeasure.KILOGRAM,
    "UN": UnitOfMeasure.UNIT,
    "PC": UnitOfMeasure.UNIT,
}

# Substrings of longer OCR unit labels ("LITROS", "QUILOGRAMA", "UNIDADE", "PEÇA")
UNIT_HINT_FRAGMENTS: tuple[tuple[str, UnitOfMeasure], ...] = (
    ("LITRO", UnitOfMeasure.LITER),
    ("QUILO", UnitOfMeasure.KILOGRAM),
    ("UNID", UnitOfMeasure.UNIT),
    ("PECA", UnitOfMeasure.UNIT),
    ("PEÇA", UnitOfMeasure.UNIT),
)

# Units whose stock is measured, so a missing package volume is acceptable
MEASURED_UNITS = frozenset({UnitOfMeasure.LITER, UnitOfMeasure.KILOGRAM, UnitOfMeasure.METER})

_NUMBER = r"(\d+(?:[.,]\d+)?)"

# (pattern, divisor), tried in order
VOLUME_PATTERNS: tuple[tuple[re.Pattern, float], ...] = (
    (re.compile(_NUMBER + r"\s*(?:l|lt|litro|litros)\b", re.IGNORECASE), 1.0),
    (re.compile(_NUMBER + r"\s*ml\b", re.IGNORECASE), 1000.0),
    (re.compile(_NUMBER + r"\s*kg\b", re.IGNORECASE), 1.0),
    (re.compile(_NUMBER + r"\s*g\b", re.IGNORECASE), 1000.0),
)


def _parse_decimal(s: str) -> Optional[float]:
    """Parse '1,5' or '1.5'."""
    try:
        return float(s.replace(",", "."))
    except ValueError:
        return None


def unit_from_hint(ocr_unit_hint: Optional[str]) -> Optional[UnitOfMeasure]:
    """Map the OCR unit column to a unit, or None if it is empty or unknown."""
    hint = str(ocr_unit_hint or "").strip().upper()
    if not hint:
        return None
    if hint in UNIT_HINT_CODES:
        return UNIT_HINT_CODES[hint]
    for fragment, unit in UNIT_HINT_FRAGMENTS:
        if fragment in hint:
            return unit
    return None


def detect_unit(description: Optional[str], ocr_unit_hint: Optional[str] = None) -> UnitOfMeasure:
    """Infer the stock unit for an item. Never fails; defaults to UNIT."""
    text = str(description or "").lower()

    if VISCOSITY_PATTERN.search(text):
        return UnitOfMeasure.LITER
    if LITER_WORD.search(text) or "litro" in text:
        return UnitOfMeasure.LITER

    from_hint = unit_from_hint(ocr_unit_hint)
    if from_hint is not None:
        return from_hint

    if "kg" in text or "quilo" in text:
        return UnitOfMeasure.KILOGRAM

    return UnitOfMeasure.UNIT


def detect_volume(description: Optional[str]) -> Optional[float]:
    """
    Extract liters/kilograms per package from the description.
    Handles: 5L, 1,5 lt, 4 litros, 500ml, 20kg, 500g.
    Returns a positive finite number or None.
    """
    text = str(description or "").lower()

    for pattern, divisor in VOLUME_PATTERNS:
        for m in pattern.finditer(text):
            value = _parse_decimal(m.group(1))
            # runaway OCR digit strings parse to inf
            if value is not None and value > 0 and math.isfinite(value):
                return value / divisor

    # Lubricant without a declared volume: sold per liter
    if VISCOSITY_PATTERN.search(text):
        return 1.0

    return None


def resolve_volume(volume: Optional[float], unit: UnitOfMeasure) -> Optional[float]:
    """Volume to pre-fill on the review form: liter items default to 1."""
    if volume is not None:
        return volume
    return 1.0 if unit == UnitOfMeasure.LITER else None


def needs_volume(volume: Optional[float], unit: UnitOfMeasure) -> bool:
    """True when the review form must ask for a package volume."""
    return not volume and unit not in MEASURED_UNITS
