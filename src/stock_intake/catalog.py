"""
Stock catalog collaborators: the HTTP stock API and an in-memory stand-in.
The shared HTTP client is lazily built from settings and reused across calls.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import requests
from pydantic import ValidationError

from .config import get_settings
from .errors import CatalogError
from .matching import normalize_name
from .models import CatalogProduct

logger = logging.getLogger(__name__)

PRODUCTS_PATH = "/api/produtos"


def _parse_products(records: Any) -> list[CatalogProduct]:
    """Validate API records; malformed ones are skipped."""
    products: list[CatalogProduct] = []
    for record in records or []:
        try:
            products.append(CatalogProduct.model_validate(record))
        except ValidationError as e:
            logger.debug(f"Skipping malformed catalog record {record!r}: {e}")
    return products


def product_payload(product: CatalogProduct, **changes: Any) -> dict:
    """Wire payload for a product, with changes applied (keys are field names)."""
    return product.model_copy(update=changes).model_dump(mode="json", by_alias=True)


class CatalogClient:
    """Thin client for the stock API product endpoints."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise CatalogError(f"{method} {path} failed: {e}") from e
        if not resp.ok:
            raise CatalogError(
                f"{method} {path} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            body = resp.json()
        except ValueError as e:
            raise CatalogError(f"{method} {path} returned invalid JSON") from e
        return body if isinstance(body, dict) else {"data": body}

    def search(self, keywords: str) -> list[CatalogProduct]:
        """Products whose name, code or brand contains the keywords."""
        body = self._request("GET", PRODUCTS_PATH, params={"busca": keywords})
        return _parse_products(body.get("data"))

    def list_products(self) -> list[CatalogProduct]:
        body = self._request("GET", PRODUCTS_PATH)
        return _parse_products(body.get("data"))

    def create_product(self, payload: dict) -> Optional[CatalogProduct]:
        body = self._request("POST", PRODUCTS_PATH, json=payload)
        created = _parse_products([body.get("data")]) if body.get("data") else []
        return created[0] if created else None

    def update_product(self, product_id: int, payload: dict) -> Optional[CatalogProduct]:
        body = self._request("PUT", f"{PRODUCTS_PATH}/{product_id}", json=payload)
        updated = _parse_products([body.get("data")]) if body.get("data") else []
        return updated[0] if updated else None


class InMemoryCatalog:
    """
    Catalog over a local product list (offline runs and tests).
    search() keeps products whose normalized name/code/brand contains every keyword.
    """

    def __init__(self, products: Iterable[CatalogProduct] = ()):
        self.products: list[CatalogProduct] = list(products)

    def _haystack(self, product: CatalogProduct) -> str:
        return normalize_name(" ".join(filter(None, (product.name, product.code, product.brand))))

    def search(self, keywords: str) -> list[CatalogProduct]:
        terms = normalize_name(keywords).split()
        return [p for p in self.products if all(t in self._haystack(p) for t in terms)]

    def list_products(self) -> list[CatalogProduct]:
        return list(self.products)

    def create_product(self, payload: dict) -> CatalogProduct:
        next_id = max((p.id for p in self.products), default=0) + 1
        product = CatalogProduct.model_validate({**payload, "id": next_id})
        self.products.append(product)
        return product

    def update_product(self, product_id: int, payload: dict) -> CatalogProduct:
        """Full replacement, like the stock API PUT: fields missing from payload are dropped."""
        for i, p in enumerate(self.products):
            if p.id == product_id:
                product = CatalogProduct.model_validate({**payload, "id": product_id})
                self.products[i] = product
                return product
        raise CatalogError(f"Product {product_id} not found", status_code=404)


_client: Optional[CatalogClient] = None


def get_catalog_client() -> Optional[CatalogClient]:
    """Return shared stock API client, or None if STOCK_API_URL is not set."""
    global _client
    if _client is not None:
        return _client
    settings = get_settings()
    if not settings.api_url:
        return None
    _client = CatalogClient(settings.api_url, token=settings.api_token, timeout=settings.api_timeout)
    return _client
