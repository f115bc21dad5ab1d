"""Service layer for the live search pipeline."""

from livesearch.services.search_service import SearchOutcome, SearchService

__all__ = [
    "SearchOutcome",
    "SearchService",
]
