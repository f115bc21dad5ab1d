"""Projection of ranked candidates onto the response wire models."""

import re
from collections.abc import Sequence

from livesearch.config import SearchConfig
from livesearch.models.product import Product, TaxonomyTerm
from livesearch.models.search import (
    CategoryResult,
    ProductResult,
    ScoredCandidate,
    SearchResponse,
    SearchSections,
)

_TAG_PATTERN = re.compile(r"<[^>]*>")
ELLIPSIS = "…"


def trim_words(text: str, word_limit: int) -> str:
    """Strip markup and keep the first ``word_limit`` words.

    Appends an ellipsis when words were cut.
    """
    words = _TAG_PATTERN.sub(" ", text or "").split()
    if len(words) <= word_limit:
        return " ".join(words)
    return " ".join(words[:word_limit]) + ELLIPSIS


class ResultProjector:
    """Build the response payload from ranked products and found categories."""

    def __init__(self, word_limit: int = 15, category_limit: int = 5):
        self.word_limit = word_limit
        self.category_limit = category_limit

    def project_product(self, product: Product) -> ProductResult:
        return ProductResult(
            id=product.id,
            title=product.name,
            url=product.permalink,
            image=product.image_url or None,
            price=product.price_html,
            sku=product.sku,
            short_description=trim_words(product.short_description, self.word_limit),
        )

    @staticmethod
    def project_category(term: TaxonomyTerm) -> CategoryResult:
        return CategoryResult(
            id=term.term_id,
            name=term.name,
            url=term.permalink,
            count=term.count,
        )

    def project(
        self,
        ranked: Sequence[ScoredCandidate],
        config: SearchConfig,
        categories: Sequence[TaxonomyTerm] = (),
    ) -> SearchResponse:
        """Truncate to ``result_limit`` and build the response.

        The object shape (``{"products", "categories"}``) is emitted only when
        category search is enabled and at least one category matched;
        otherwise ``data`` is the bare product list.
        """
        products = [
            self.project_product(candidate.product)
            for candidate in ranked[: config.result_limit]
        ]

        if config.search_in_categories and categories:
            return SearchResponse(
                data=SearchSections(
                    products=products,
                    categories=[
                        self.project_category(term)
                        for term in categories[: self.category_limit]
                    ],
                )
            )
        return SearchResponse(data=products)


__all__ = ["ELLIPSIS", "ResultProjector", "trim_words"]
