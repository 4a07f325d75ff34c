"""
Exceptions raised by the intake flow. Detection and matching functions never raise.
"""
from __future__ import annotations

from typing import Optional


class IntakeError(Exception):
    """Base class for stock intake failures."""


class CatalogError(IntakeError):
    """The stock API could not be reached or rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MissingSalePriceError(IntakeError):
    """New products in a review must have a sale price before commit."""

    def __init__(self, count: int):
        super().__init__(f"Preencha o preço de venda de {count} produto(s)")
        self.count = count
