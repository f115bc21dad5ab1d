"""Catalog adapters: the only way the search core reaches product data."""

from livesearch.catalog.base import (
    CatalogAdapter,
    ProductField,
    is_visible_in_search,
    title_tokens,
)
from livesearch.catalog.memory import InMemoryCatalog
from livesearch.catalog.sqlite import SQLiteCatalog
from livesearch.config import Settings


async def open_catalog(settings: Settings) -> CatalogAdapter:
    """Create and connect the adapter selected by ``catalog_backend``."""
    if settings.catalog_backend == "sqlite":
        catalog = SQLiteCatalog(
            settings.catalog_db_path,
            recent_titles_ttl=settings.recent_titles_ttl_seconds,
        )
        await catalog.connect()
        return catalog
    return InMemoryCatalog.from_json(settings.catalog_path)


__all__ = [
    "CatalogAdapter",
    "InMemoryCatalog",
    "ProductField",
    "SQLiteCatalog",
    "is_visible_in_search",
    "open_catalog",
    "title_tokens",
]
