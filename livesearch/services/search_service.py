"""Search service driving the live product search pipeline."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from livesearch.catalog.base import CatalogAdapter
from livesearch.config import SearchConfig, SearchConfigSource, Settings, get_settings
from livesearch.logging_config import get_logger, search_context
from livesearch.models.product import TaxonomyTerm
from livesearch.models.search import ScoredCandidate, SearchResponse
from livesearch.search.dictionaries import load_synonyms, load_typo_corrections
from livesearch.search.exceptions import (
    InternalSearchError,
    SearchCancelledError,
    SearchDisabledError,
    SearchError,
)
from livesearch.search.gatherer import CandidateGatherer, GatherResult
from livesearch.search.normalizer import NormalizedQuery, QueryNormalizer
from livesearch.search.projector import ResultProjector
from livesearch.search.ranker import RelevanceRanker

logger = get_logger(__name__)

CLIENT_STRINGS = {
    "no_results": "No products found",
    "loading": "Loading...",
    "error": "Search error occurred",
    "view_all": "View All Results",
}


@dataclass(slots=True)
class SearchOutcome:
    """Everything one pipeline run produced before projection."""

    config: SearchConfig
    query: NormalizedQuery
    gathered: GatherResult
    ranked: list[ScoredCandidate]
    categories: list[TaxonomyTerm] = field(default_factory=list)


class SearchService:
    """Service answering live search requests against one catalog.

    One request runs these stages:
    1. Capture the current search options (frozen for the request)
    2. Normalize the query (length check, typo table, fuzzy repair)
    3. Gather candidates from every enabled scope concurrently, together
       with the optional category section lookup
    4. Rank candidates by relevance
    5. Project the top ``result_limit`` products onto the wire format

    Catalog access in stages 2-3 runs under a single request deadline.
    """

    def __init__(
        self,
        catalog: CatalogAdapter,
        config_source: SearchConfigSource | None = None,
        normalizer: QueryNormalizer | None = None,
        gatherer: CandidateGatherer | None = None,
        ranker: RelevanceRanker | None = None,
        projector: ResultProjector | None = None,
        settings: Settings | None = None,
        config: SearchConfig | None = None,
    ):
        """Initialize the search service.

        Args:
            catalog: Catalog adapter all lookups go through
            config_source: Option store read by :meth:`reload_config`
            normalizer: Query normalizer
            gatherer: Candidate gatherer
            ranker: Relevance ranker
            projector: Result projector
            settings: Service settings (global settings when None)
            config: Initial search options (loaded from ``config_source`` when None)
        """
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.config_source = config_source or SearchConfigSource(self.settings.options_path)

        self.normalizer = normalizer or QueryNormalizer(
            typo_corrections=load_typo_corrections(self.settings.typo_corrections_path),
            synonyms=load_synonyms(self.settings.synonyms_path),
            fuzzy_sample_size=self.settings.fuzzy_sample_size,
            fuzzy_max_distance=self.settings.fuzzy_max_distance,
            fuzzy_min_length=self.settings.fuzzy_min_length,
            sample_timeout=self.settings.scope_timeout_seconds,
        )
        self.gatherer = gatherer or CandidateGatherer(
            catalog,
            scope_timeout=self.settings.scope_timeout_seconds,
            candidate_multiplier=self.settings.candidate_multiplier,
        )
        self.ranker = ranker or RelevanceRanker()
        self.projector = projector or ResultProjector(
            word_limit=self.settings.description_word_limit,
            category_limit=self.settings.category_section_limit,
        )
        self.request_deadline = self.settings.request_deadline_seconds
        self.category_section_limit = self.settings.category_section_limit

        self._config = config if config is not None else self.config_source.load()

        logger.info(
            f"SearchService initialized: catalog={catalog.name}, "
            f"deadline={self.request_deadline}s, "
            f"scope_timeout={self.settings.scope_timeout_seconds}s"
        )

    @property
    def config(self) -> SearchConfig:
        """Search options new requests will capture."""
        return self._config

    def reload_config(self) -> SearchConfig:
        """Re-read the option store and swap the active options.

        Requests already running keep the options they captured.

        Raises:
            pydantic.ValidationError: If the stored options are invalid; the
                previous options stay active
        """
        config = self.config_source.load()
        self._config = config
        logger.info(f"Search options reloaded: {config.summary()}")
        return config

    async def search(self, raw_query: str) -> SearchResponse:
        """Run the live search pipeline for one query.

        Args:
            raw_query: Query as typed by the shopper

        Returns:
            SearchResponse with up to ``result_limit`` products

        Raises:
            SearchDisabledError: Live search is switched off
            QueryTooShortError: Query shorter than ``min_chars``
            UpstreamUnavailableError: Every enabled scope failed
            SearchCancelledError: The request deadline expired
            InternalSearchError: Any unexpected failure
            asyncio.CancelledError: The request task was cancelled from outside
        """
        outcome = await self.execute(raw_query)
        return self.projector.project(outcome.ranked, outcome.config, outcome.categories)

    async def execute(self, raw_query: str) -> SearchOutcome:
        """Run every stage except projection; see :meth:`search`."""
        with search_context((raw_query or "").strip()):
            return await self._run(raw_query)

    async def _run(self, raw_query: str) -> SearchOutcome:
        config = self._config
        start_time = time.perf_counter()

        if not config.enable_ajax:
            logger.warning(f"Search rejected: kind=Disabled code={SearchDisabledError.code}")
            raise SearchDisabledError()

        try:
            logger.info(f"→ SEARCH START: '{raw_query}'")
            async with asyncio.timeout(self.request_deadline):
                query = await self.normalizer.normalize(raw_query, config, self.catalog)
                gathered, categories = await self._gather(query, config)

            ranked = self.ranker.rank(gathered.candidates, query.text)
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"✓ SEARCH COMPLETE: '{query.text}' -> {min(len(ranked), config.result_limit)} "
                f"products, {len(categories)} categories ({elapsed_ms:.1f}ms)"
            )
            return SearchOutcome(
                config=config,
                query=query,
                gathered=gathered,
                ranked=ranked,
                categories=categories,
            )

        except SearchError as e:
            logger.warning(
                f"Search failed: kind={type(e).__name__} code={e.code} detail={e.detail}"
            )
            raise
        except TimeoutError as e:
            logger.warning(
                f"Search failed: kind=Cancelled code={SearchCancelledError.code} "
                f"deadline={self.request_deadline}s exceeded"
            )
            raise SearchCancelledError(
                f"Search exceeded the {self.request_deadline}s deadline"
            ) from e
        except asyncio.CancelledError:
            logger.warning(
                f"Search failed: kind=Cancelled code={SearchCancelledError.code} "
                f"request aborted by client"
            )
            raise
        except Exception as e:
            logger.error(
                f"Search failed: kind=Internal code={InternalSearchError.code}: {e}",
                exc_info=True,
            )
            raise InternalSearchError() from e

    async def _gather(
        self,
        query: NormalizedQuery,
        config: SearchConfig,
    ) -> tuple[GatherResult, list[TaxonomyTerm]]:
        if not config.search_in_categories:
            return await self.gatherer.gather(query.text, config), []

        categories_task = asyncio.create_task(
            self.gatherer.matching_categories(
                query.text, config, self.category_section_limit
            )
        )
        try:
            gathered = await self.gatherer.gather(query.text, config)
            categories = await categories_task
        finally:
            if not categories_task.done():
                categories_task.cancel()
        return gathered, categories

    def view_all_url(self, query: str) -> str:
        """Shop search page listing every result for ``query``."""
        return f"{self.settings.shop_url}/?{urlencode({'s': query.strip()})}"

    def client_settings(self) -> dict[str, Any]:
        """Settings the storefront widget needs to drive live search."""
        config = self._config
        return {
            "enabled": config.enable_ajax,
            "min_length": config.min_chars,
            "delay": config.search_delay,
            "max_results": config.result_limit,
            "view_all_url": f"{self.settings.shop_url}/",
            "strings": dict(CLIENT_STRINGS),
        }

    async def close(self) -> None:
        """Release the catalog adapter if it holds resources."""
        close = getattr(self.catalog, "close", None)
        if close is not None:
            await close()
            logger.info(f"Catalog '{self.catalog.name}' closed")
