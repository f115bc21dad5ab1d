"""Transient pipeline records and the search response wire models."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from livesearch.models.product import Product, ProductStatus


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """Hard filters every catalog lookup must honour.

    Attributes:
        limit: Maximum number of rows one lookup may return
        exclude_out_of_stock: Drop products whose stock status is out of stock
        excluded_ids: Product ids that never appear in results
        status: Required publication status
    """

    limit: int
    exclude_out_of_stock: bool = False
    excluded_ids: frozenset[int] = frozenset()
    status: ProductStatus = ProductStatus.PUBLISH

    def accepts(self, product: Product) -> bool:
        """Return whether ``product`` passes status, stock and id filters."""
        if product.status != self.status:
            return False
        if product.id in self.excluded_ids:
            return False
        if self.exclude_out_of_stock and not product.is_in_stock:
            return False
        return True

    def with_limit(self, limit: int) -> "SearchFilters":
        return SearchFilters(
            limit=limit,
            exclude_out_of_stock=self.exclude_out_of_stock,
            excluded_ids=self.excluded_ids,
            status=self.status,
        )


@dataclass(slots=True)
class ScoredCandidate:
    """A gathered product together with its running relevance score.

    ``position`` is the gatherer insertion index, used as the tie-breaker.
    """

    product: Product
    position: int
    score: int = 0
    signals: dict[str, int] = field(default_factory=dict)


class ProductResult(BaseModel):
    """One product in the search response. Field names are wire contract."""

    id: int
    title: str
    url: str
    image: str | None = None
    price: str
    sku: str
    short_description: str


class CategoryResult(BaseModel):
    """One matching category in the optional category section."""

    id: int
    name: str
    url: str
    count: int = Field(ge=0)


class SearchSections(BaseModel):
    """Object-shaped payload used when the category section is present."""

    products: list[ProductResult]
    categories: list[CategoryResult]


class SearchResponse(BaseModel):
    """Successful search response.

    ``data`` is a bare product list, or :class:`SearchSections` when matching
    categories are reported. Clients must accept both shapes.
    """

    success: bool = True
    data: list[ProductResult] | SearchSections

    @property
    def products(self) -> list[ProductResult]:
        if isinstance(self.data, SearchSections):
            return self.data.products
        return self.data

    @property
    def categories(self) -> list[CategoryResult]:
        if isinstance(self.data, SearchSections):
            return self.data.categories
        return []
