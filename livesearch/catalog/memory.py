"""In-memory catalog adapter backed by a JSON export."""

import json
import logging
from collections import Counter
from collections.abc import Callable, Iterable
from pathlib import Path

from livesearch.catalog.base import (
    ProductField,
    field_value,
    is_visible_in_search,
    match_tier,
    title_tokens,
)
from livesearch.models.product import (
    ATTRIBUTE_TAXONOMY_PREFIX,
    Product,
    ProductStatus,
    TaxonomyTerm,
)
from livesearch.models.search import SearchFilters

logger = logging.getLogger(__name__)


class InMemoryCatalog:
    """Catalog held in insertion-ordered dictionaries.

    Insertion order doubles as catalog recency: the last product added is
    the most recent one.
    """

    name = "memory"

    def __init__(
        self,
        products: Iterable[Product] = (),
        terms: Iterable[TaxonomyTerm] = (),
    ):
        self._products: dict[int, Product] = {}
        self._terms: dict[tuple[str, int], TaxonomyTerm] = {}
        for product in products:
            self.add_product(product)
        for term in terms:
            self.add_term(term)

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryCatalog":
        """Build a catalog from a ``{"products": [...], "terms": [...]}`` file.

        Terms listed without a ``count`` get the number of published products
        referencing them.

        Args:
            path: JSON export to read

        Returns:
            Populated catalog (empty when the file does not exist)
        """
        if not path.exists():
            logger.warning(f"Catalog file {path} not found, starting with an empty catalog")
            return cls()

        raw = json.loads(path.read_text(encoding="utf-8"))
        products = [Product.model_validate(item) for item in raw.get("products", [])]

        memberships: Counter[tuple[str, int]] = Counter()
        for product in products:
            if product.status != ProductStatus.PUBLISH:
                continue
            for term in product.terms:
                memberships[(term.taxonomy, term.term_id)] += 1

        terms = []
        for item in raw.get("terms", []):
            if "count" not in item:
                item = {**item, "count": memberships[(item["taxonomy"], item["term_id"])]}
            terms.append(TaxonomyTerm.model_validate(item))

        catalog = cls(products, terms)
        logger.info(
            f"Loaded in-memory catalog from {path}: "
            f"{len(products)} products, {len(terms)} terms"
        )
        return catalog

    def add_product(self, product: Product) -> None:
        self._products[product.id] = product

    def add_term(self, term: TaxonomyTerm) -> None:
        self._terms[(term.taxonomy, term.term_id)] = term

    def __len__(self) -> int:
        return len(self._products)

    def visibility_filter(self) -> Callable[[Product], bool]:
        return is_visible_in_search

    def _iter_searchable(self, filters: SearchFilters) -> Iterable[Product]:
        visible = self.visibility_filter()
        for product in self._products.values():
            if filters.accepts(product) and visible(product):
                yield product

    async def search_by_field(
        self,
        field: ProductField,
        query: str,
        filters: SearchFilters,
    ) -> list[Product]:
        needle = query.lower()
        if not needle:
            return []

        matches: list[tuple[int, Product]] = []
        for product in self._iter_searchable(filters):
            value = field_value(product, field).lower()
            if value and needle in value:
                matches.append((match_tier(value, needle), product))

        # Best tier first so the row cap never drops an exact match
        matches.sort(key=lambda match: match[0])
        return [product for _, product in matches[: filters.limit]]

    async def search_by_taxonomy(
        self,
        taxonomy: str,
        name_fragment: str,
        filters: SearchFilters,
    ) -> list[TaxonomyTerm]:
        needle = name_fragment.lower()
        if not needle:
            return []

        matches = [
            term
            for term in self._terms.values()
            if term.taxonomy == taxonomy and needle in term.name.lower()
        ]
        matches.sort(key=lambda term: (term.name.lower(), term.term_id))
        return matches[: filters.limit]

    async def products_in_terms(
        self,
        taxonomy: str,
        term_ids: Iterable[int],
        filters: SearchFilters,
    ) -> list[Product]:
        wanted = set(term_ids)
        if not wanted:
            return []

        matches: list[Product] = []
        for product in self._iter_searchable(filters):
            if len(matches) >= filters.limit:
                break
            if product.term_ids(taxonomy) & wanted:
                matches.append(product)
        return matches

    async def list_attribute_taxonomies(self) -> list[str]:
        return sorted(
            {
                taxonomy
                for taxonomy, _ in self._terms
                if taxonomy.startswith(ATTRIBUTE_TAXONOMY_PREFIX)
            }
        )

    async def recent_title_tokens(self, limit: int) -> list[str]:
        titles: list[str] = []
        for product in reversed(self._products.values()):
            if len(titles) >= limit:
                break
            if product.status == ProductStatus.PUBLISH:
                titles.append(product.name)
        return title_tokens(titles)
