"""Logging configuration for the search service.

Every record carries the id of the HTTP request and the query being
searched, both taken from context variables so concurrent requests do
not mix them up.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from livesearch.config import Settings, get_settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
search_query_var: ContextVar[str | None] = ContextVar("search_query", default=None)

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(request_id)s | q=%(search_query)s | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every statement or access line at INFO
NOISY_LOGGERS = ("aiosqlite", "uvicorn.access", "httpx", "httpcore")


class SearchContextFilter(logging.Filter):
    """Copy the request id and current query onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        query = search_query_var.get()
        record.search_query = repr(query) if query is not None else "-"
        return True


class LevelColorFormatter(logging.Formatter):
    """Color the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color is None:
            return super().format(record)

        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(settings: Settings | None = None) -> None:
    """Install the console handler on the root logger.

    Safe to call more than once; earlier handlers are replaced.

    Args:
        settings: Service settings (global settings when None)
    """
    settings = settings or get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(settings.log_level)
    formatter_class = LevelColorFormatter if sys.stdout.isatty() else logging.Formatter
    handler.setFormatter(formatter_class(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SearchContextFilter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={settings.log_level}, catalog={settings.catalog_backend}"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def clear_request_id() -> None:
    request_id_var.set(None)


@contextmanager
def search_context(query: str) -> Iterator[None]:
    """Tag log records emitted inside the block with ``query``."""
    token = search_query_var.set(query)
    try:
        yield
    finally:
        search_query_var.reset(token)
