"""Deterministic relevance scoring for gathered candidates."""

import logging
from collections.abc import Iterable, Mapping

from livesearch.models.product import Product
from livesearch.models.search import ScoredCandidate

logger = logging.getLogger(__name__)

# Title tiers (highest matching tier only)
TITLE_EXACT = 200
TITLE_PREFIX = 150
TITLE_SUBSTRING = 100

# SKU tiers (highest matching tier only)
SKU_EXACT = 120
SKU_SUBSTRING = 80

# Taxonomy clauses (first matching term only)
CATEGORY_MATCH = 70
TAG_MATCH = 60
ATTRIBUTE_MATCH = 50

EXCERPT_MATCH = 40
CONTENT_MATCH = 30

# Boosts
POPULARITY_CAP = 20
POPULARITY_DIVISOR = 10
ON_SALE_BOOST = 10
FEATURED_BOOST = 15


def popularity_boost(total_sales: int) -> int:
    """Integer sales boost, capped at ``POPULARITY_CAP``."""
    return min(max(total_sales, 0) // POPULARITY_DIVISOR, POPULARITY_CAP)


def _any_contains(names: Iterable[str], query: str) -> bool:
    return any(query in name.lower() for name in names)


class RelevanceRanker:
    """Score products against the normalized query and sort them.

    Scores are plain integers so equal relevance compares equal; the sort
    is stable, so equal scores keep the gatherer's insertion order.
    """

    def score(self, product: Product, query: str) -> tuple[int, dict[str, int]]:
        """Score a single product.

        Args:
            product: Candidate product
            query: Normalized (lower-cased) query

        Returns:
            Tuple of (total score, points per signal)
        """
        query = query.lower()
        signals: dict[str, int] = {}

        title = product.name.lower()
        if title == query:
            signals["title_exact"] = TITLE_EXACT
        elif title.startswith(query):
            signals["title_prefix"] = TITLE_PREFIX
        elif query in title:
            signals["title_substring"] = TITLE_SUBSTRING

        sku = product.sku.lower()
        if sku:
            if sku == query:
                signals["sku_exact"] = SKU_EXACT
            elif query in sku:
                signals["sku_substring"] = SKU_SUBSTRING

        if _any_contains(product.category_names, query):
            signals["category"] = CATEGORY_MATCH
        if _any_contains(product.tag_names, query):
            signals["tag"] = TAG_MATCH
        if _any_contains(product.attribute_term_names, query):
            signals["attribute"] = ATTRIBUTE_MATCH

        if query in product.short_description.lower():
            signals["excerpt"] = EXCERPT_MATCH
        if query in product.description.lower():
            signals["content"] = CONTENT_MATCH

        popularity = popularity_boost(product.total_sales)
        if popularity:
            signals["popularity"] = popularity
        if product.on_sale:
            signals["on_sale"] = ON_SALE_BOOST
        if product.featured:
            signals["featured"] = FEATURED_BOOST

        return sum(signals.values()), signals

    def rank(
        self,
        candidates: Mapping[int, Product],
        query: str,
    ) -> list[ScoredCandidate]:
        """Score every candidate and sort by score, descending.

        Args:
            candidates: Gathered products keyed by id, in insertion order
            query: Normalized query

        Returns:
            Scored candidates, highest score first, ties in insertion order
        """
        scored = []
        for position, product in enumerate(candidates.values()):
            total, signals = self.score(product, query)
            scored.append(
                ScoredCandidate(
                    product=product,
                    position=position,
                    score=total,
                    signals=signals,
                )
            )

        scored.sort(key=lambda candidate: candidate.score, reverse=True)

        if scored:
            logger.debug(
                f"Ranked {len(scored)} candidates for '{query}', "
                f"top={scored[0].product.id} score={scored[0].score}"
            )
        return scored


__all__ = ["RelevanceRanker", "popularity_boost"]
