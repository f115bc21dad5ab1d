"""Catalog entities exposed by the catalog adapters."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

CATEGORY_TAXONOMY = "product_cat"
TAG_TAXONOMY = "product_tag"
ATTRIBUTE_TAXONOMY_PREFIX = "pa_"


class ProductStatus(str, Enum):
    """Publication status of a product."""

    PUBLISH = "publish"
    DRAFT = "draft"
    PENDING = "pending"
    PRIVATE = "private"


class CatalogVisibility(str, Enum):
    """Where a product is shown in the storefront."""

    VISIBLE = "visible"  # shop and search
    CATALOG = "catalog"  # shop only
    SEARCH = "search"  # search only
    HIDDEN = "hidden"  # neither


class StockStatus(str, Enum):
    """Stock state of a product."""

    IN_STOCK = "instock"
    OUT_OF_STOCK = "outofstock"
    ON_BACKORDER = "onbackorder"


class ProductTerm(BaseModel):
    """Reference from a product to one taxonomy term."""

    model_config = ConfigDict(frozen=True)

    taxonomy: str = Field(min_length=1)
    term_id: int
    name: str


class Product(BaseModel):
    """A catalog product, immutable for the lifetime of a request."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Stable product identifier")
    name: str = Field(description="Display name")
    permalink: str = Field(default="", description="Product page URL")
    image_url: str | None = Field(default=None, description="Thumbnail URL")
    price_html: str = Field(default="", description="Rendered price, opaque")
    sku: str = ""
    short_description: str = ""
    description: str = ""
    terms: tuple[ProductTerm, ...] = ()
    status: ProductStatus = ProductStatus.PUBLISH
    visibility: CatalogVisibility = CatalogVisibility.VISIBLE
    stock_status: StockStatus = StockStatus.IN_STOCK
    total_sales: int = Field(default=0, ge=0)
    on_sale: bool = False
    featured: bool = False

    def term_names(self, taxonomy: str) -> list[str]:
        """Names of the terms this product has in ``taxonomy``."""
        return [term.name for term in self.terms if term.taxonomy == taxonomy]

    def term_ids(self, taxonomy: str) -> set[int]:
        """Ids of the terms this product has in ``taxonomy``."""
        return {term.term_id for term in self.terms if term.taxonomy == taxonomy}

    @property
    def category_names(self) -> list[str]:
        return self.term_names(CATEGORY_TAXONOMY)

    @property
    def tag_names(self) -> list[str]:
        return self.term_names(TAG_TAXONOMY)

    @property
    def attribute_term_names(self) -> list[str]:
        return [
            term.name
            for term in self.terms
            if term.taxonomy.startswith(ATTRIBUTE_TAXONOMY_PREFIX)
        ]

    @property
    def is_in_stock(self) -> bool:
        return self.stock_status != StockStatus.OUT_OF_STOCK


class TaxonomyTerm(BaseModel):
    """A term of a product taxonomy (category, tag or attribute)."""

    model_config = ConfigDict(frozen=True)

    taxonomy: str = Field(min_length=1)
    term_id: int
    name: str
    permalink: str = ""
    count: int = Field(default=0, ge=0, description="Products in this term")
