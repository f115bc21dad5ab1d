"""Candidate gathering across the enabled search scopes."""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from livesearch.catalog.base import CatalogAdapter, ProductField
from livesearch.config import SearchConfig
from livesearch.models.product import CATEGORY_TAXONOMY, TAG_TAXONOMY, Product, TaxonomyTerm
from livesearch.models.search import SearchFilters
from livesearch.search.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CandidateMap = OrderedDict[int, Product]


class Scope(str, Enum):
    """Search scopes, declared in merge order."""

    TITLE = "title"
    SKU = "sku"
    CONTENT = "content"
    EXCERPT = "excerpt"
    CATEGORIES = "categories"
    TAGS = "tags"
    ATTRIBUTES = "attributes"


SCOPE_ORDER: tuple[Scope, ...] = tuple(Scope)

_SCOPE_OPTIONS = {
    Scope.TITLE: "search_in_title",
    Scope.SKU: "search_in_sku",
    Scope.CONTENT: "search_in_content",
    Scope.EXCERPT: "search_in_excerpt",
    Scope.CATEGORIES: "search_in_categories",
    Scope.TAGS: "search_in_tags",
    Scope.ATTRIBUTES: "search_in_attributes",
}

_FIELD_SCOPES = {
    Scope.TITLE: ProductField.TITLE,
    Scope.SKU: ProductField.SKU,
    Scope.CONTENT: ProductField.CONTENT,
    Scope.EXCERPT: ProductField.EXCERPT,
}

_TAXONOMY_SCOPES = {
    Scope.CATEGORIES: CATEGORY_TAXONOMY,
    Scope.TAGS: TAG_TAXONOMY,
}


def enabled_scopes(config: SearchConfig) -> list[Scope]:
    """Scopes switched on in ``config``, in declared order."""
    return [scope for scope in SCOPE_ORDER if getattr(config, _SCOPE_OPTIONS[scope])]


def filters_for(config: SearchConfig) -> SearchFilters:
    """Hard filters for one request; each lookup is capped at ``result_limit``."""
    return SearchFilters(
        limit=config.result_limit,
        exclude_out_of_stock=config.exclude_out_of_stock,
        excluded_ids=config.excluded_product_ids,
    )


@dataclass(slots=True)
class ScopeOutcome:
    """Result slot of one scope lookup."""

    scope: Scope
    products: list[Product] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class GatherResult:
    """Deduplicated candidates plus per-scope bookkeeping."""

    candidates: CandidateMap
    scopes: list[Scope]
    scope_counts: dict[Scope, int] = field(default_factory=dict)
    failed_scopes: list[Scope] = field(default_factory=list)


class CandidateGatherer:
    """Query every enabled scope concurrently and union the results.

    Scope lookups run as concurrent tasks, but each writes into its own
    positional slot and slots are merged in declared scope order, so the
    candidate insertion order does not depend on which lookup finishes
    first. A scope that raises or times out contributes nothing; the
    request only fails when every enabled scope failed.
    """

    def __init__(
        self,
        catalog: CatalogAdapter,
        scope_timeout: float | None = 0.5,
        candidate_multiplier: int = 8,
    ):
        """Initialize the gatherer.

        Args:
            catalog: Adapter every lookup goes through
            scope_timeout: Budget in seconds for each adapter call
            candidate_multiplier: Total cap is this times ``result_limit``
        """
        self.catalog = catalog
        self.scope_timeout = scope_timeout
        self.candidate_multiplier = candidate_multiplier

    async def gather(self, query: str, config: SearchConfig) -> GatherResult:
        """Collect candidates for ``query`` from the scopes enabled in ``config``.

        Args:
            query: Normalized query text
            config: Search options captured for this request

        Returns:
            GatherResult with candidates keyed by product id, in insertion order

        Raises:
            UpstreamUnavailableError: If every enabled scope failed
        """
        scopes = enabled_scopes(config)
        if not scopes:
            logger.info("No search scopes enabled, nothing to gather")
            return GatherResult(candidates=OrderedDict(), scopes=[])

        filters = filters_for(config)
        started = time.perf_counter()

        outcomes = await asyncio.gather(
            *(self._run_scope(scope, query, filters) for scope in scopes)
        )

        result = self._merge(
            outcomes,
            filters=filters,
            total_cap=config.result_limit * self.candidate_multiplier,
        )
        result.scopes = scopes

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Gathered {len(result.candidates)} candidates from {len(scopes)} scopes "
            f"in {elapsed_ms:.1f}ms (failed: {[s.value for s in result.failed_scopes]})"
        )

        if len(result.failed_scopes) == len(scopes):
            raise UpstreamUnavailableError(
                f"All {len(scopes)} enabled search scopes failed"
            )
        return result

    async def matching_categories(
        self,
        query: str,
        config: SearchConfig,
        limit: int,
    ) -> list[TaxonomyTerm]:
        """Categories whose name contains ``query``; empty on any failure."""
        filters = filters_for(config).with_limit(limit)
        try:
            terms = await self._call(
                self.catalog.search_by_taxonomy(CATEGORY_TAXONOMY, query, filters)
            )
        except TimeoutError:
            logger.warning("Category section lookup timed out")
            return []
        except Exception as e:
            logger.warning(f"Category section lookup failed: {e}")
            return []
        return terms[:limit]

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.scope_timeout)

    async def _run_scope(
        self,
        scope: Scope,
        query: str,
        filters: SearchFilters,
    ) -> ScopeOutcome:
        try:
            if scope in _FIELD_SCOPES:
                products = await self._call(
                    self.catalog.search_by_field(_FIELD_SCOPES[scope], query, filters)
                )
            elif scope in _TAXONOMY_SCOPES:
                products = await self._taxonomy_products(
                    _TAXONOMY_SCOPES[scope], query, filters
                )
            else:
                products = await self._attribute_products(query, filters)
        except TimeoutError:
            logger.warning(f"Scope '{scope.value}' timed out after {self.scope_timeout}s")
            return ScopeOutcome(scope=scope, error="timeout")
        except Exception as e:
            logger.warning(f"Scope '{scope.value}' failed: {type(e).__name__}: {e}")
            return ScopeOutcome(scope=scope, error=str(e) or type(e).__name__)

        return ScopeOutcome(scope=scope, products=products[: filters.limit])

    async def _taxonomy_products(
        self,
        taxonomy: str,
        query: str,
        filters: SearchFilters,
    ) -> list[Product]:
        terms = await self._call(self.catalog.search_by_taxonomy(taxonomy, query, filters))
        if not terms:
            return []
        return await self._call(
            self.catalog.products_in_terms(
                taxonomy, [term.term_id for term in terms], filters
            )
        )

    async def _attribute_products(
        self,
        query: str,
        filters: SearchFilters,
    ) -> list[Product]:
        taxonomies = await self._call(self.catalog.list_attribute_taxonomies())
        if not taxonomies:
            return []

        per_attribute = await asyncio.gather(
            *(self._taxonomy_products(t, query, filters) for t in taxonomies),
            return_exceptions=True,
        )

        failures = [r for r in per_attribute if isinstance(r, BaseException)]
        if len(failures) == len(per_attribute):
            raise failures[0]

        seen: set[int] = set()
        products: list[Product] = []
        for taxonomy, found in zip(taxonomies, per_attribute):
            if isinstance(found, BaseException):
                logger.warning(f"Attribute taxonomy '{taxonomy}' lookup failed: {found}")
                continue
            for product in found:
                if product.id not in seen:
                    seen.add(product.id)
                    products.append(product)
        return products

    def _merge(
        self,
        outcomes: list[ScopeOutcome],
        filters: SearchFilters,
        total_cap: int,
    ) -> GatherResult:
        visible = self.catalog.visibility_filter()
        candidates: CandidateMap = OrderedDict()
        result = GatherResult(candidates=candidates, scopes=[])

        for outcome in outcomes:
            if outcome.failed:
                result.failed_scopes.append(outcome.scope)
                result.scope_counts[outcome.scope] = 0
                continue

            result.scope_counts[outcome.scope] = len(outcome.products)
            for product in outcome.products:
                if len(candidates) >= total_cap:
                    break
                if product.id in candidates:
                    continue
                if not (filters.accepts(product) and visible(product)):
                    logger.debug(
                        f"Dropping product {product.id} from scope "
                        f"'{outcome.scope.value}': fails hard filters"
                    )
                    continue
                candidates[product.id] = product

        return result


__all__ = [
    "CandidateGatherer",
    "CandidateMap",
    "GatherResult",
    "Scope",
    "SCOPE_ORDER",
    "ScopeOutcome",
    "enabled_scopes",
    "filters_for",
]
