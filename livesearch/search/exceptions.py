"""Error kinds raised by the search pipeline."""


class SearchError(Exception):
    """Base class for failures surfaced to the caller.

    Attributes:
        code: Stable machine-readable error kind
        message: Human-readable message safe to show to shoppers
        status_code: HTTP status used by the web layer
    """

    code = "search_error"
    message = "Search error occurred"
    status_code = 500

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.message
        super().__init__(self.detail)


class SearchDisabledError(SearchError):
    """Live search is switched off in the search options."""

    code = "disabled"
    message = "Search is disabled"
    status_code = 403


class QueryTooShortError(SearchError):
    """Trimmed query is shorter than ``min_chars``."""

    code = "query_too_short"
    message = "Query too short"
    status_code = 400


class UpstreamUnavailableError(SearchError):
    """Every enabled gather scope failed or timed out."""

    code = "upstream_unavailable"
    message = "Search is temporarily unavailable"
    status_code = 503


class SearchCancelledError(SearchError):
    """The request was aborted or ran past its deadline."""

    code = "cancelled"
    message = "Search request was cancelled"
    status_code = 504


class InternalSearchError(SearchError):
    """Programmer error or broken invariant inside the pipeline."""

    code = "internal"
    message = "Search error occurred"
    status_code = 500


__all__ = [
    "SearchError",
    "SearchDisabledError",
    "QueryTooShortError",
    "UpstreamUnavailableError",
    "SearchCancelledError",
    "InternalSearchError",
]
