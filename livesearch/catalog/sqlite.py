"""SQLite catalog adapter using aiosqlite."""

import logging
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import aiosqlite
from cachetools import TTLCache

from livesearch.catalog.base import (
    HIDDEN_FROM_SEARCH,
    ProductField,
    is_visible_in_search,
    title_tokens,
)
from livesearch.models.product import (
    ATTRIBUTE_TAXONOMY_PREFIX,
    Product,
    ProductStatus,
    ProductTerm,
    StockStatus,
    TaxonomyTerm,
)
from livesearch.models.search import SearchFilters

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    permalink TEXT NOT NULL DEFAULT '',
    image_url TEXT,
    price_html TEXT NOT NULL DEFAULT '',
    sku TEXT NOT NULL DEFAULT '',
    short_description TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'publish',
    visibility TEXT NOT NULL DEFAULT 'visible',
    stock_status TEXT NOT NULL DEFAULT 'instock',
    total_sales INTEGER NOT NULL DEFAULT 0,
    on_sale INTEGER NOT NULL DEFAULT 0,
    featured INTEGER NOT NULL DEFAULT 0,
    name_lc TEXT NOT NULL DEFAULT '',
    sku_lc TEXT NOT NULL DEFAULT '',
    short_description_lc TEXT NOT NULL DEFAULT '',
    description_lc TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS terms (
    taxonomy TEXT NOT NULL,
    term_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    name_lc TEXT NOT NULL,
    permalink TEXT NOT NULL DEFAULT '',
    count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (taxonomy, term_id)
);

CREATE TABLE IF NOT EXISTS product_terms (
    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    taxonomy TEXT NOT NULL,
    term_id INTEGER NOT NULL,
    PRIMARY KEY (product_id, taxonomy, term_id)
);

CREATE INDEX IF NOT EXISTS idx_product_terms_term ON product_terms (taxonomy, term_id);
"""

# Lower-cased shadow columns matched by LIKE
_FIELD_COLUMNS = {
    ProductField.TITLE: "name_lc",
    ProductField.SKU: "sku_lc",
    ProductField.CONTENT: "description_lc",
    ProductField.EXCERPT: "short_description_lc",
}

_PRODUCT_COLUMNS = (
    "p.id, p.name, p.permalink, p.image_url, p.price_html, p.sku, "
    "p.short_description, p.description, p.status, p.visibility, "
    "p.stock_status, p.total_sales, p.on_sale, p.featured"
)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally (ESCAPE '\\')."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    """LIKE pattern matching ``value`` anywhere, case-folded."""
    return f"%{escape_like(value.lower())}%"


def prefix_pattern(value: str) -> str:
    """LIKE pattern matching values that start with ``value``, case-folded."""
    return f"{escape_like(value.lower())}%"


class SQLiteCatalog:
    """Catalog adapter over a SQLite database.

    Matching runs against lower-cased shadow columns written at import time,
    which keeps LIKE case-insensitive beyond ASCII.
    """

    name = "sqlite"

    def __init__(self, db_path: Path | str, recent_titles_ttl: int = 60):
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._recent_titles: TTLCache[int, list[str]] = TTLCache(
            maxsize=16, ttl=recent_titles_ttl
        )

    async def __aenter__(self) -> "SQLiteCatalog":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the connection and make sure the schema exists."""
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON")
        await self.initialize()
        logger.info(f"Connected SQLite catalog at '{self.db_path}'")

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        conn = self._require_conn()
        await conn.executescript(SCHEMA)
        await conn.commit()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteCatalog is not connected; call connect() first")
        return self._conn

    async def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        conn = self._require_conn()
        async with conn.execute(sql, tuple(params)) as cursor:
            return list(await cursor.fetchall())

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def upsert_terms(self, terms: Iterable[TaxonomyTerm]) -> int:
        """Insert or replace taxonomy terms.

        Returns:
            Number of terms written
        """
        conn = self._require_conn()
        rows = [
            (t.taxonomy, t.term_id, t.name, t.name.lower(), t.permalink, t.count)
            for t in terms
        ]
        await conn.executemany(
            "INSERT OR REPLACE INTO terms "
            "(taxonomy, term_id, name, name_lc, permalink, count) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            rows,
        )
        await conn.commit()
        return len(rows)

    async def upsert_products(self, products: Iterable[Product]) -> int:
        """Insert or replace products together with their term links.

        Returns:
            Number of products written
        """
        conn = self._require_conn()
        count = 0
        try:
            for product in products:
                await conn.execute(
                    "INSERT OR REPLACE INTO products "
                    "(id, name, permalink, image_url, price_html, sku, short_description, "
                    "description, status, visibility, stock_status, total_sales, on_sale, "
                    "featured, name_lc, sku_lc, short_description_lc, description_lc) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        product.id,
                        product.name,
                        product.permalink,
                        product.image_url,
                        product.price_html,
                        product.sku,
                        product.short_description,
                        product.description,
                        product.status.value,
                        product.visibility.value,
                        product.stock_status.value,
                        product.total_sales,
                        int(product.on_sale),
                        int(product.featured),
                        product.name.lower(),
                        product.sku.lower(),
                        product.short_description.lower(),
                        product.description.lower(),
                    ),
                )
                await conn.execute(
                    "DELETE FROM product_terms WHERE product_id = ?", (product.id,)
                )
                await conn.executemany(
                    "INSERT OR IGNORE INTO product_terms (product_id, taxonomy, term_id) "
                    "VALUES (?, ?, ?)",
                    [(product.id, t.taxonomy, t.term_id) for t in product.terms],
                )
                count += 1
            await conn.commit()
        except Exception:
            if conn.in_transaction:
                await conn.rollback()
            raise
        self._recent_titles.clear()
        return count

    async def refresh_term_counts(self) -> None:
        """Recount published products per term."""
        conn = self._require_conn()
        await conn.execute(
            "UPDATE terms SET count = ("
            " SELECT COUNT(*) FROM product_terms pt"
            " JOIN products p ON p.id = pt.product_id"
            " WHERE pt.taxonomy = terms.taxonomy AND pt.term_id = terms.term_id"
            " AND p.status = ?)",
            (ProductStatus.PUBLISH.value,),
        )
        await conn.commit()

    # ------------------------------------------------------------------
    # Adapter capabilities
    # ------------------------------------------------------------------

    def visibility_filter(self) -> Callable[[Product], bool]:
        return is_visible_in_search

    def _filter_clause(self, filters: SearchFilters) -> tuple[str, list[Any]]:
        hidden = sorted(v.value for v in HIDDEN_FROM_SEARCH)
        clauses = [
            "p.status = ?",
            f"p.visibility NOT IN ({', '.join('?' for _ in hidden)})",
        ]
        params: list[Any] = [filters.status.value, *hidden]
        if filters.exclude_out_of_stock:
            clauses.append("p.stock_status != ?")
            params.append(StockStatus.OUT_OF_STOCK.value)
        if filters.excluded_ids:
            excluded = sorted(filters.excluded_ids)
            clauses.append(f"p.id NOT IN ({', '.join('?' for _ in excluded)})")
            params.extend(excluded)
        return " AND ".join(clauses), params

    async def _hydrate(self, rows: list[aiosqlite.Row]) -> list[Product]:
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        term_rows = await self._fetchall(
            "SELECT pt.product_id, t.taxonomy, t.term_id, t.name "
            "FROM product_terms pt "
            "JOIN terms t ON t.taxonomy = pt.taxonomy AND t.term_id = pt.term_id "
            f"WHERE pt.product_id IN ({', '.join('?' for _ in ids)}) "
            "ORDER BY pt.product_id, t.taxonomy, t.term_id",
            ids,
        )
        terms_by_product: dict[int, list[ProductTerm]] = {}
        for row in term_rows:
            terms_by_product.setdefault(row["product_id"], []).append(
                ProductTerm(taxonomy=row["taxonomy"], term_id=row["term_id"], name=row["name"])
            )

        return [
            Product(
                id=row["id"],
                name=row["name"],
                permalink=row["permalink"],
                image_url=row["image_url"],
                price_html=row["price_html"],
                sku=row["sku"],
                short_description=row["short_description"],
                description=row["description"],
                terms=tuple(terms_by_product.get(row["id"], ())),
                status=row["status"],
                visibility=row["visibility"],
                stock_status=row["stock_status"],
                total_sales=row["total_sales"],
                on_sale=bool(row["on_sale"]),
                featured=bool(row["featured"]),
            )
            for row in rows
        ]

    async def search_by_field(
        self,
        field: ProductField,
        query: str,
        filters: SearchFilters,
    ) -> list[Product]:
        if not query:
            return []

        column = _FIELD_COLUMNS[field]
        where, params = self._filter_clause(filters)
        rows = await self._fetchall(
            f"SELECT {_PRODUCT_COLUMNS} FROM products p "
            f"WHERE {where} AND p.{column} != '' AND p.{column} LIKE ? ESCAPE '\\' "
            # Exact, then prefix matches first so the row cap never drops them
            f"ORDER BY p.{column} = ? DESC, p.{column} LIKE ? ESCAPE '\\' DESC, p.id LIMIT ?",
            [
                *params,
                contains_pattern(query),
                query.lower(),
                prefix_pattern(query),
                filters.limit,
            ],
        )
        return await self._hydrate(rows)

    async def search_by_taxonomy(
        self,
        taxonomy: str,
        name_fragment: str,
        filters: SearchFilters,
    ) -> list[TaxonomyTerm]:
        if not name_fragment:
            return []

        rows = await self._fetchall(
            "SELECT taxonomy, term_id, name, permalink, count FROM terms "
            "WHERE taxonomy = ? AND name_lc LIKE ? ESCAPE '\\' "
            "ORDER BY name_lc, term_id LIMIT ?",
            [taxonomy, contains_pattern(name_fragment), filters.limit],
        )
        return [
            TaxonomyTerm(
                taxonomy=row["taxonomy"],
                term_id=row["term_id"],
                name=row["name"],
                permalink=row["permalink"],
                count=row["count"],
            )
            for row in rows
        ]

    async def products_in_terms(
        self,
        taxonomy: str,
        term_ids: Iterable[int],
        filters: SearchFilters,
    ) -> list[Product]:
        ids = sorted(set(term_ids))
        if not ids:
            return []

        where, params = self._filter_clause(filters)
        rows = await self._fetchall(
            f"SELECT {_PRODUCT_COLUMNS} FROM products p "
            f"WHERE {where} AND p.id IN ("
            " SELECT product_id FROM product_terms"
            f" WHERE taxonomy = ? AND term_id IN ({', '.join('?' for _ in ids)})"
            ") ORDER BY p.id LIMIT ?",
            [*params, taxonomy, *ids, filters.limit],
        )
        return await self._hydrate(rows)

    async def list_attribute_taxonomies(self) -> list[str]:
        rows = await self._fetchall(
            "SELECT DISTINCT taxonomy FROM terms WHERE taxonomy LIKE ? ESCAPE '\\' "
            "ORDER BY taxonomy",
            [f"{escape_like(ATTRIBUTE_TAXONOMY_PREFIX)}%"],
        )
        return [row["taxonomy"] for row in rows]

    async def recent_title_tokens(self, limit: int) -> list[str]:
        cached = self._recent_titles.get(limit)
        if cached is not None:
            return cached

        rows = await self._fetchall(
            "SELECT name FROM products WHERE status = ? ORDER BY id DESC LIMIT ?",
            [ProductStatus.PUBLISH.value, limit],
        )
        tokens = title_tokens(row["name"] for row in rows)
        self._recent_titles[limit] = tokens
        return tokens
