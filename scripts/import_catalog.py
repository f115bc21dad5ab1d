#!/usr/bin/env python3
"""Script to load a JSON catalog export into the SQLite catalog."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from livesearch.catalog.sqlite import SQLiteCatalog
from livesearch.config import get_settings
from livesearch.models.product import Product, TaxonomyTerm


def load_export(path: Path) -> tuple[list[Product], list[TaxonomyTerm]]:
    """Read a ``{"products": [...], "terms": [...]}`` export.

    Args:
        path: JSON export file

    Returns:
        Validated products and terms
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    products = [Product.model_validate(item) for item in raw.get("products", [])]
    terms = [TaxonomyTerm.model_validate(item) for item in raw.get("terms", [])]
    return products, terms


async def import_catalog(source: Path, db_path: Path, recount: bool) -> None:
    """Import ``source`` into the database at ``db_path``."""
    products, terms = load_export(source)
    print(f"Read {len(products)} products and {len(terms)} terms from {source}")

    async with SQLiteCatalog(db_path) as catalog:
        written_terms = await catalog.upsert_terms(terms)
        written_products = await catalog.upsert_products(products)
        if recount:
            await catalog.refresh_term_counts()

    print(f"✓ Imported {written_products} products and {written_terms} terms into {db_path}")
    if recount:
        print("✓ Term counts recomputed from published products")


def main():
    """Parse arguments and run the import."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", type=Path, help="JSON catalog export")
    parser.add_argument(
        "--db",
        type=Path,
        default=settings.catalog_db_path,
        help=f"SQLite database to write (default: {settings.catalog_db_path})",
    )
    parser.add_argument(
        "--keep-counts",
        action="store_true",
        help="Keep term counts from the export instead of recomputing them",
    )
    args = parser.parse_args()

    if not args.source.exists():
        print(f"Error: File {args.source} does not exist")
        sys.exit(1)

    asyncio.run(import_catalog(args.source, args.db, recount=not args.keep_counts))


if __name__ == "__main__":
    main()
