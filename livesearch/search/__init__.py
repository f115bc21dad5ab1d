"""Search core: normalizer, gatherer, ranker and projector."""

from livesearch.search.exceptions import (
    InternalSearchError,
    QueryTooShortError,
    SearchCancelledError,
    SearchDisabledError,
    SearchError,
    UpstreamUnavailableError,
)
from livesearch.search.gatherer import (
    SCOPE_ORDER,
    CandidateGatherer,
    GatherResult,
    Scope,
    enabled_scopes,
)
from livesearch.search.normalizer import NormalizedQuery, QueryNormalizer
from livesearch.search.projector import ResultProjector, trim_words
from livesearch.search.ranker import RelevanceRanker, popularity_boost

__all__ = [
    # Pipeline stages
    "QueryNormalizer",
    "NormalizedQuery",
    "CandidateGatherer",
    "GatherResult",
    "Scope",
    "SCOPE_ORDER",
    "enabled_scopes",
    "RelevanceRanker",
    "popularity_boost",
    "ResultProjector",
    "trim_words",
    # Errors
    "SearchError",
    "SearchDisabledError",
    "QueryTooShortError",
    "UpstreamUnavailableError",
    "SearchCancelledError",
    "InternalSearchError",
]
