"""Tests for the in-memory catalog adapter."""

import json

import pytest

from livesearch.catalog.base import ProductField
from livesearch.catalog.memory import InMemoryCatalog
from livesearch.models.product import CATEGORY_TAXONOMY
from livesearch.models.search import SearchFilters


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "products": [
                    {
                        "id": 1,
                        "name": "Red Shoes",
                        "terms": [{"taxonomy": "product_cat", "term_id": 5, "name": "Shoes"}],
                    },
                    {
                        "id": 2,
                        "name": "Blue Shoes",
                        "status": "draft",
                        "terms": [{"taxonomy": "product_cat", "term_id": 5, "name": "Shoes"}],
                    },
                    {
                        "id": 3,
                        "name": "Green Shoes",
                        "stock_status": "outofstock",
                        "terms": [{"taxonomy": "product_cat", "term_id": 5, "name": "Shoes"}],
                    },
                ],
                "terms": [
                    {"taxonomy": "product_cat", "term_id": 5, "name": "Shoes"},
                    {"taxonomy": "product_cat", "term_id": 6, "name": "Shoe Care", "count": 9},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


class TestInMemoryCatalog:
    """Loading and bookkeeping of the in-memory adapter."""

    def test_from_json(self, catalog_file):
        catalog = InMemoryCatalog.from_json(catalog_file)

        assert len(catalog) == 3

    @pytest.mark.asyncio
    async def test_term_counts_computed_from_published_products(self, catalog_file):
        catalog = InMemoryCatalog.from_json(catalog_file)

        terms = await catalog.search_by_taxonomy(CATEGORY_TAXONOMY, "shoe", SearchFilters(limit=5))

        counts = {t.name: t.count for t in terms}
        assert counts == {"Shoe Care": 9, "Shoes": 2}

    def test_missing_file_gives_empty_catalog(self, tmp_path):
        catalog = InMemoryCatalog.from_json(tmp_path / "missing.json")

        assert len(catalog) == 0

    @pytest.mark.asyncio
    async def test_add_product_replaces_by_id(self, product_factory):
        catalog = InMemoryCatalog([product_factory(1, "Old Name")])
        catalog.add_product(product_factory(1, "New Name"))

        found = await catalog.search_by_field(ProductField.TITLE, "name", SearchFilters(limit=5))

        assert len(catalog) == 1
        assert [p.name for p in found] == ["New Name"]
