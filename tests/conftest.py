"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Callable, Iterable

import pytest

from livesearch.catalog.base import ProductField
from livesearch.catalog.memory import InMemoryCatalog
from livesearch.config import SearchConfig, SearchConfigSource, Settings
from livesearch.models.product import (
    CATEGORY_TAXONOMY,
    Product,
    ProductTerm,
    TaxonomyTerm,
)
from livesearch.models.search import SearchFilters
from livesearch.services.search_service import SearchService


class RecordingCatalog:
    """InMemoryCatalog wrapper that records calls and injects faults.

    Calls are keyed by scope: the field name for field lookups, the
    taxonomy for term lookups, ``"attributes"`` for the attribute listing
    and ``"recent"`` for the title sampler. ``delays`` and ``failures`` use
    the same keys.
    """

    name = "recording"

    def __init__(self, inner: InMemoryCatalog):
        self.inner = inner
        self.calls: list[tuple[str, str]] = []
        self.delays: dict[str, float] = {}
        self.failures: set[str] = set()

    async def _enter(self, method: str, key: str) -> None:
        self.calls.append((method, key))
        delay = self.delays.get(key)
        if delay:
            await asyncio.sleep(delay)
        if key in self.failures:
            raise RuntimeError(f"injected failure for {key}")

    def keys(self) -> list[str]:
        return [key for _, key in self.calls]

    async def search_by_field(
        self, field: ProductField, query: str, filters: SearchFilters
    ) -> list[Product]:
        await self._enter("search_by_field", field.value)
        return await self.inner.search_by_field(field, query, filters)

    async def search_by_taxonomy(
        self, taxonomy: str, name_fragment: str, filters: SearchFilters
    ) -> list[TaxonomyTerm]:
        await self._enter("search_by_taxonomy", taxonomy)
        return await self.inner.search_by_taxonomy(taxonomy, name_fragment, filters)

    async def products_in_terms(
        self, taxonomy: str, term_ids: Iterable[int], filters: SearchFilters
    ) -> list[Product]:
        await self._enter("products_in_terms", taxonomy)
        return await self.inner.products_in_terms(taxonomy, term_ids, filters)

    async def list_attribute_taxonomies(self) -> list[str]:
        await self._enter("list_attribute_taxonomies", "attributes")
        return await self.inner.list_attribute_taxonomies()

    async def recent_title_tokens(self, limit: int) -> list[str]:
        await self._enter("recent_title_tokens", "recent")
        return await self.inner.recent_title_tokens(limit)

    def visibility_filter(self):
        return self.inner.visibility_filter()


def build_product(product_id: int, name: str, **fields) -> Product:
    """Product with sensible defaults; ``terms`` may be given as tuples."""
    terms = fields.pop("terms", ())
    fields["terms"] = tuple(
        term if isinstance(term, ProductTerm) else ProductTerm(
            taxonomy=term[0], term_id=term[1], name=term[2]
        )
        for term in terms
    )
    fields.setdefault("permalink", f"https://shop.example/product/{product_id}")
    fields.setdefault("price_html", "$10.00")
    return Product(id=product_id, name=name, **fields)


def build_term(taxonomy: str, term_id: int, name: str, count: int = 0) -> TaxonomyTerm:
    slug = name.lower().replace(" ", "-")
    return TaxonomyTerm(
        taxonomy=taxonomy,
        term_id=term_id,
        name=name,
        permalink=f"https://shop.example/{taxonomy}/{slug}",
        count=count,
    )


@pytest.fixture
def product_factory() -> Callable[..., Product]:
    """Factory building :class:`Product` instances."""
    return build_product


@pytest.fixture
def term_factory() -> Callable[..., TaxonomyTerm]:
    """Factory building :class:`TaxonomyTerm` instances."""
    return build_term


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        options_path=tmp_path / "search_options.json",
        catalog_path=tmp_path / "catalog.json",
        catalog_db_path=tmp_path / "catalog.db",
        shop_url="https://shop.example/shop",
    )


@pytest.fixture
def make_config() -> Callable[..., SearchConfig]:
    """Factory building :class:`SearchConfig` with overrides."""

    def _make(**overrides) -> SearchConfig:
        return SearchConfig(**overrides)

    return _make


@pytest.fixture
def make_service(test_settings) -> Callable[..., SearchService]:
    """Factory wiring a :class:`SearchService` around a catalog."""

    def _make(catalog, config: SearchConfig | None = None, **settings_overrides) -> SearchService:
        settings = (
            test_settings.model_copy(update=settings_overrides)
            if settings_overrides
            else test_settings
        )
        return SearchService(
            catalog,
            config_source=SearchConfigSource(settings.options_path),
            settings=settings,
            config=config or SearchConfig(),
        )

    return _make


@pytest.fixture
def apparel_catalog() -> InMemoryCatalog:
    """Small catalog with categories, tags and attributes."""
    shoes = build_term(CATEGORY_TAXONOMY, 100, "Shoes", count=3)
    shirts = build_term(CATEGORY_TAXONOMY, 101, "Shirts", count=2)
    summer = build_term("product_tag", 200, "Summer", count=2)
    red = build_term("pa_color", 300, "Red", count=2)
    cotton = build_term("pa_material", 310, "Cotton", count=1)

    products = [
        build_product(1, "Red T-Shirt", sku="TS-RED", terms=[
            ("product_cat", 101, "Shirts"), ("product_tag", 200, "Summer"),
            ("pa_color", 300, "Red"), ("pa_material", 310, "Cotton"),
        ], short_description="Soft cotton tee", total_sales=55),
        build_product(2, "Red Shoes", sku="SH-RED", terms=[
            ("product_cat", 100, "Shoes"), ("pa_color", 300, "Red"),
        ], on_sale=True),
        build_product(3, "Running Shoes", sku="SH-RUN", terms=[
            ("product_cat", 100, "Shoes"), ("product_tag", 200, "Summer"),
        ], featured=True, total_sales=400),
        build_product(4, "Leather Boots", sku="", terms=[
            ("product_cat", 100, "Shoes"),
        ], description="Sturdy boots, pairs well with red socks"),
        build_product(5, "Blue Shirt", terms=[("product_cat", 101, "Shirts")]),
    ]
    return InMemoryCatalog(products, [shoes, shirts, summer, red, cotton])


@pytest.fixture
def recording() -> Callable[[InMemoryCatalog], RecordingCatalog]:
    """Factory wrapping a catalog in a :class:`RecordingCatalog`."""
    return RecordingCatalog
