"""Pydantic models and pipeline records for the live product search."""

from livesearch.models.error import ErrorDetail, ErrorResponse
from livesearch.models.product import (
    ATTRIBUTE_TAXONOMY_PREFIX,
    CATEGORY_TAXONOMY,
    TAG_TAXONOMY,
    CatalogVisibility,
    Product,
    ProductStatus,
    ProductTerm,
    StockStatus,
    TaxonomyTerm,
)
from livesearch.models.search import (
    CategoryResult,
    ProductResult,
    ScoredCandidate,
    SearchFilters,
    SearchResponse,
    SearchSections,
)

__all__ = [
    # Catalog entities
    "Product",
    "ProductTerm",
    "TaxonomyTerm",
    "ProductStatus",
    "CatalogVisibility",
    "StockStatus",
    "CATEGORY_TAXONOMY",
    "TAG_TAXONOMY",
    "ATTRIBUTE_TAXONOMY_PREFIX",
    # Pipeline records
    "SearchFilters",
    "ScoredCandidate",
    # Wire models
    "ProductResult",
    "CategoryResult",
    "SearchSections",
    "SearchResponse",
    # Error models
    "ErrorDetail",
    "ErrorResponse",
]
