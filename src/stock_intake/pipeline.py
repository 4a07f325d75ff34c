"""
Invoice intake pipeline: scanned invoice JSON -> category/unit/volume detection
-> catalog search + best match -> review rows -> commit (create or update stock).
Per-item search-and-resolve steps are independent and may run in parallel.
"""
from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .categories import DEFAULT_RULES, RuleSet, classify
from .catalog import product_payload
from .config import get_settings
from .errors import CatalogError, MissingSalePriceError
from .matching import score_best_match, search_keywords
from .models import (
    CatalogProduct,
    CategoryCorrection,
    CategoryTag,
    CommitSummary,
    InvoiceReview,
    LineItem,
    MatchResult,
    ReviewItem,
    ScannedInvoice,
)
from .units import detect_unit, detect_volume, needs_volume, resolve_volume

logger = logging.getLogger(__name__)

DEFAULT_BRAND = "NF Import"


class Catalog(Protocol):
    def search(self, keywords: str) -> list[CatalogProduct]: ...

    def list_products(self) -> list[CatalogProduct]: ...

    def create_product(self, payload: dict) -> Optional[CatalogProduct]: ...

    def update_product(self, product_id: int, payload: dict) -> Optional[CatalogProduct]: ...


def _find_existing(
    description: str,
    catalog: Optional[Catalog],
    threshold: float,
) -> MatchResult:
    """Keyword pre-filter on the catalog, then best match over the narrowed set."""
    if catalog is None:
        return MatchResult()
    keywords = search_keywords(description)
    if not keywords:
        return MatchResult()
    try:
        candidates = catalog.search(keywords)
    except CatalogError as e:
        logger.warning(f"Catalog search failed for {keywords!r}, treating as new product: {e}")
        return MatchResult()
    return score_best_match(description, candidates, threshold)


def prepare_item(
    item: LineItem,
    index: int,
    invoice_number: Optional[str] = None,
    catalog: Optional[Catalog] = None,
    rules: RuleSet = DEFAULT_RULES,
    threshold: Optional[float] = None,
) -> ReviewItem:
    """Build the pre-filled review row for one scanned line item."""
    settings = get_settings()
    if threshold is None:
        threshold = settings.match_threshold

    desc = item.description
    category = classify(desc, item.supplier_code, rules)
    unit = detect_unit(desc, item.ocr_unit_hint)
    volume = resolve_volume(detect_volume(desc), unit)
    match = _find_existing(desc, catalog, threshold)
    existing = match.product

    return ReviewItem(
        index=index,
        code=item.supplier_code or f"NF-{invoice_number or 'AUTO'}-{index + 1}",
        description=desc,
        category=category,
        unit=unit,
        volume_per_unit=volume,
        missing_volume=needs_volume(volume, unit),
        quantity=item.quantity or 1,
        min_stock=settings.default_min_stock,
        purchase_price=round(item.unit_price or 0.0, 2),
        sale_price=existing.unit_price if existing is not None else 0.0,
        existing_product=existing,
        match_score=round(match.score, 4),
        update_existing=existing is not None,
    )


def prepare_review(
    invoice: ScannedInvoice,
    catalog: Optional[Catalog] = None,
    max_workers: int = 1,
    rules: RuleSet = DEFAULT_RULES,
) -> list[ReviewItem]:
    """
    Review rows for every item of a scanned invoice, in invoice order.
    When max_workers > 1, catalog lookups for different items run in parallel.
    """
    items = invoice.items
    if max_workers <= 1 or len(items) <= 1:
        return [
            prepare_item(item, i, invoice.invoice_number, catalog, rules)
            for i, item in enumerate(items)
        ]

    # Workers share one catalog client (and its requests.Session); only GET searches run here
    rows: list[ReviewItem] = [None] * len(items)  # type: ignore
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_idx = {
            executor.submit(prepare_item, item, i, invoice.invoice_number, catalog, rules): i
            for i, item in enumerate(items)
        }
        for future in as_completed(future_to_idx):
            idx = future_to_idx[future]
            rows[idx] = future.result()
    return rows


def is_update(item: ReviewItem) -> bool:
    return item.existing_product is not None and item.update_existing


def new_product_payload(item: ReviewItem, brand: Optional[str] = None) -> dict:
    """Stock API payload creating a product from a review row."""
    return {
        "codigo": item.code,
        "nome": item.description,
        "marca": brand or DEFAULT_BRAND,
        "categoria": item.category.value,
        "unidade": item.unit.value,
        "volumeUnidade": item.volume_per_unit or None,
        "quantidade": item.quantity,
        "estoqueMinimo": item.min_stock,
        "precoCompra": item.purchase_price,
        "precoCompraAtual": item.purchase_price,
        "precoVenda": item.sale_price,
    }


def stock_update_payload(item: ReviewItem) -> dict:
    """Stock API payload adding a review row's quantity to its matched product."""
    product = item.existing_product
    return product_payload(
        product,
        quantity_on_hand=product.quantity_on_hand + (item.quantity or 0),
        current_purchase_price=item.purchase_price or product.current_purchase_price,
    )


def commit_review(
    items: Iterable[ReviewItem],
    catalog: Catalog,
    supplier_name: Optional[str] = None,
) -> CommitSummary:
    """
    Save the selected review rows: matched rows add to existing stock, others
    create products. Raises MissingSalePriceError before saving anything if a
    new product has no sale price. A failed row is logged and counted.
    """
    selected = [i for i in items if i.selected]
    missing_price = [i for i in selected if not is_update(i) and not i.sale_price]
    if missing_price:
        raise MissingSalePriceError(len(missing_price))

    summary = CommitSummary()
    for item in selected:
        try:
            if is_update(item):
                catalog.update_product(item.existing_product.id, stock_update_payload(item))
                summary.updated += 1
            else:
                catalog.create_product(new_product_payload(item, supplier_name))
                summary.created += 1
        except CatalogError as e:
            logger.error(f"Could not save item {item.code} ({item.description}): {e}")
            summary.failed += 1

    logger.info(summary.message)
    return summary


def suggest_category_corrections(
    products: Iterable[CatalogProduct],
    rules: RuleSet = DEFAULT_RULES,
) -> list[CategoryCorrection]:
    """Products filed under OTHER that the rules now place in a real category."""
    corrections: list[CategoryCorrection] = []
    for p in products:
        if p.category != CategoryTag.OTHER:
            continue
        detected = classify(p.name, p.code, rules)
        if detected != CategoryTag.OTHER:
            corrections.append(
                CategoryCorrection(
                    product_id=p.id,
                    code=p.code,
                    name=p.name,
                    current=p.category,
                    suggested=detected,
                    product=p,
                )
            )
    return corrections


def apply_category_corrections(
    corrections: Iterable[CategoryCorrection],
    catalog: Catalog,
) -> int:
    """Write suggested categories back. Returns how many were saved."""
    applied = 0
    for c in corrections:
        try:
            catalog.update_product(c.product_id, product_payload(c.product, category=c.suggested))
            applied += 1
        except CatalogError as e:
            logger.error(f"Could not recategorize product {c.product_id} ({c.name}): {e}")
    logger.info(f"{applied} produto(s) corrigido(s)")
    return applied


def load_scanned_invoice(path: str | Path) -> ScannedInvoice:
    """Read an invoice scan result (JSON) from disk."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return ScannedInvoice.model_validate(data)


def review_invoice_file(
    path: str | Path,
    catalog: Optional[Catalog] = None,
    max_workers: int = 1,
) -> InvoiceReview:
    path = Path(path)
    invoice = load_scanned_invoice(path)
    meta: dict = {"catalog": catalog is not None}
    if invoice.error:
        meta["scan_error"] = invoice.error
    return InvoiceReview(
        source_file=path.name,
        supplier_name=invoice.supplier_name,
        supplier_cnpj=invoice.supplier_cnpj,
        invoice_number=invoice.invoice_number,
        items=prepare_review(invoice, catalog, max_workers=max_workers),
        raw_metadata=meta,
    )


def _process_one(
    json_path: Path,
    output_path: Path,
    catalog: Optional[Catalog],
    max_workers: int,
) -> InvoiceReview:
    """Review a single scan file and write <stem>_review.json."""
    try:
        result = review_invoice_file(json_path, catalog, max_workers=max_workers)
    except Exception as e:
        logger.error(f"Failed to review {json_path.name}: {e}")
        result = InvoiceReview(source_file=json_path.name, raw_metadata={"error": str(e)})
    out_file = output_path / f"{json_path.stem}_review.json"
    with open(out_file, "w", encoding="utf-8") as f:
        json.dump(result.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
    return result


def run_on_folder(
    input_dir: str | Path,
    output_dir: str | Path,
    catalog: Optional[Catalog] = None,
    max_workers: int = 1,
) -> list[InvoiceReview]:
    """Review every scan (*.json) in input_dir and write one review file each to output_dir."""
    input_path = Path(input_dir)
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    if not input_path.exists():
        input_path.mkdir(parents=True, exist_ok=True)
        return []

    scans = sorted(input_path.glob("*.json"))
    return [_process_one(p, output_path, catalog, max_workers) for p in scans]
