#!/usr/bin/env python3
"""
Invoice stock intake - CLI entry point.

Usage:
  python run.py                           # Review ./input/*.json scans, output to ./output
  python run.py --input scans --output ./output
  python run.py --input ./input --offline # Skip duplicate search in the stock API
  python run.py --fix-categories          # Preview products in OUTRO that now get a category
  python run.py --fix-categories --apply  # ...and save them

Drop invoice scan results (JSON from the OCR service) into the input folder and run
to generate a pre-filled review file per invoice.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from stock_intake.catalog import get_catalog_client
from stock_intake.categories import category_label
from stock_intake.config import get_settings
from stock_intake.errors import CatalogError
from stock_intake.pipeline import (
    apply_category_corrections,
    run_on_folder,
    suggest_category_corrections,
)


def _fix_categories(apply: bool) -> int:
    catalog = get_catalog_client()
    if catalog is None:
        print("STOCK_API_URL is not set; cannot read the catalog.", file=sys.stderr)
        return 2
    try:
        corrections = suggest_category_corrections(catalog.list_products())
    except CatalogError as e:
        print(f"Could not load products: {e}", file=sys.stderr)
        return 1

    for c in corrections:
        print(f"  - [{c.code or c.product_id}] {c.name}: {category_label(c.current)} -> {category_label(c.suggested)}")
    if not corrections:
        print("No products to recategorize.")
        return 0
    if apply:
        saved = apply_category_corrections(corrections, catalog)
        print(f"{saved} of {len(corrections)} product(s) recategorized.")
    else:
        print(f"{len(corrections)} product(s) would be recategorized. Re-run with --apply to save.")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Pre-fill stock intake reviews from scanned supplier invoices."
    )
    parser.add_argument(
        "--input",
        "-i",
        type=str,
        default="./input",
        help="Input directory containing invoice scan JSON files (default: ./input)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="./output",
        help="Output directory for review JSON files (default: ./output)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not search the stock API for existing products",
    )
    parser.add_argument(
        "--parallel",
        "-j",
        type=int,
        default=1,
        metavar="N",
        help="Run up to N catalog lookups in parallel (default: 1)",
    )
    parser.add_argument(
        "--fix-categories",
        action="store_true",
        help="List catalog products in OUTRO that the rules now classify",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="With --fix-categories, save the suggested categories",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.fix_categories:
        sys.exit(_fix_categories(args.apply))

    input_path = Path(args.input)
    output_path = Path(args.output)

    if not input_path.exists():
        input_path.mkdir(parents=True, exist_ok=True)
        print(f"Created input directory: {input_path.absolute()}. Add invoice scans and run again.")
        return

    catalog = None if args.offline else get_catalog_client()
    if catalog is None and not args.offline:
        print("STOCK_API_URL is not set; every item will be treated as a new product.")

    results = run_on_folder(
        input_path,
        output_path,
        catalog=catalog,
        max_workers=max(1, args.parallel),
    )

    total_items = sum(len(r.items) for r in results)
    print(f"Reviewed {len(results)} invoice(s). Output in: {output_path.absolute()}")
    for r in results:
        matched = sum(1 for it in r.items if it.existing_product is not None)
        print(f"  - {r.source_file}: {len(r.items)} items, {matched} already in stock")
    if results:
        print(f"Total: {total_items} items in {len(results)} file(s)")


if __name__ == "__main__":
    main()
