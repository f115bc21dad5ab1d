"""Catalog adapter interface shared by every product store."""

import re
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Protocol, runtime_checkable

from livesearch.models.product import CatalogVisibility, Product, TaxonomyTerm
from livesearch.models.search import SearchFilters

_TITLE_TOKEN_PATTERN = re.compile(r"[\w-]+")

# Visibility values that keep a product out of search results
HIDDEN_FROM_SEARCH = frozenset({CatalogVisibility.CATALOG, CatalogVisibility.HIDDEN})


class ProductField(str, Enum):
    """Product fields that support direct substring lookups."""

    TITLE = "title"
    SKU = "sku"
    CONTENT = "content"
    EXCERPT = "excerpt"


def field_value(product: Product, field: ProductField) -> str:
    """Return the raw text of ``field`` for ``product``."""
    if field is ProductField.TITLE:
        return product.name
    if field is ProductField.SKU:
        return product.sku
    if field is ProductField.CONTENT:
        return product.description
    return product.short_description


def match_tier(value: str, needle: str) -> int:
    """0 for an exact match, 1 for a prefix match, 2 otherwise (both lower-cased)."""
    if value == needle:
        return 0
    if value.startswith(needle):
        return 1
    return 2


def is_visible_in_search(product: Product) -> bool:
    """Default visibility predicate: hide ``catalog``-only and ``hidden`` products."""
    return product.visibility not in HIDDEN_FROM_SEARCH


def title_tokens(titles: Iterable[str]) -> list[str]:
    """Split titles into lower-cased tokens, first occurrence wins."""
    seen: set[str] = set()
    tokens: list[str] = []
    for title in titles:
        for token in _TITLE_TOKEN_PATTERN.findall(title.lower()):
            if token not in seen:
                seen.add(token)
                tokens.append(token)
    return tokens


@runtime_checkable
class CatalogAdapter(Protocol):
    """Capability set the search core needs from a product store.

    Every lookup honours ``filters`` (status, stock policy, excluded ids and
    the row cap) and hides products rejected by :meth:`visibility_filter`.
    Matching is case-insensitive substring matching; escaping of the query
    is the adapter's concern.
    """

    name: str

    async def search_by_field(
        self,
        field: ProductField,
        query: str,
        filters: SearchFilters,
    ) -> list[Product]:
        """Products whose ``field`` contains ``query``. Empty SKUs never match."""
        ...

    async def search_by_taxonomy(
        self,
        taxonomy: str,
        name_fragment: str,
        filters: SearchFilters,
    ) -> list[TaxonomyTerm]:
        """Terms of ``taxonomy`` whose name contains ``name_fragment``."""
        ...

    async def products_in_terms(
        self,
        taxonomy: str,
        term_ids: Iterable[int],
        filters: SearchFilters,
    ) -> list[Product]:
        """Products belonging to any of ``term_ids`` in ``taxonomy``."""
        ...

    async def list_attribute_taxonomies(self) -> list[str]:
        """Names of the attribute taxonomies (``pa_*``), sorted."""
        ...

    async def recent_title_tokens(self, limit: int) -> list[str]:
        """Tokens of the ``limit`` most recently added published titles."""
        ...

    def visibility_filter(self) -> Callable[[Product], bool]:
        """Predicate selecting products that may appear in search."""
        ...
