"""FastAPI application entry point."""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Form, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from livesearch.catalog import open_catalog
from livesearch.config import get_settings
from livesearch.logging_config import clear_request_id, get_logger, set_request_id, setup_logging
from livesearch.models.error import ErrorResponse
from livesearch.models.search import SearchResponse
from livesearch.search.exceptions import (
    InternalSearchError,
    SearchError,
    UpstreamUnavailableError,
)
from livesearch.services.search_service import SearchService

setup_logging()
logger = get_logger(__name__)

settings = get_settings()

# Global service instance
search_service: SearchService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    global search_service

    logger.info("Starting Live Product Search...")
    logger.info(
        f"Configuration: backend={settings.catalog_backend}, "
        f"deadline={settings.request_deadline_seconds}s, "
        f"scope_timeout={settings.scope_timeout_seconds}s"
    )

    catalog = await open_catalog(settings)
    search_service = SearchService(catalog, settings=settings)

    logger.info("Live Product Search started successfully")

    yield

    logger.info("Shutting down Live Product Search...")

    if search_service:
        await search_service.close()
        search_service = None

    logger.info("Live Product Search shut down successfully")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Live product search for storefront autocomplete panels",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.build(message=message, code=code).model_dump(mode="json"),
    )


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Tag the request with an id (reusing the caller's) and catch anything unhandled."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    set_request_id(request_id)

    try:
        logger.info(f"Request started: {request.method} {request.url.path}")
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}"
        )
        return response
    except Exception as e:
        logger.error(
            f"Unhandled exception: {str(e)}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            InternalSearchError.message,
            InternalSearchError.code,
        )
    finally:
        clear_request_id()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(f"{field}: {error['msg']}")

    detail = "; ".join(errors)

    logger.warning(
        f"Validation error for request {request_id}: {detail}",
        extra={"path": request.url.path},
    )

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        f"Invalid request: {detail}",
        "invalid_request",
    )


@app.exception_handler(SearchError)
async def search_exception_handler(request: Request, exc: SearchError):
    """Render search failures in the ``success: false`` envelope.

    Shoppers get the generic message of the error kind; the detail is
    only logged.
    """
    logger.info(
        f"Search error for request {getattr(request.state, 'request_id', '-')}: "
        f"code={exc.code} status={exc.status_code}"
    )
    status_code = status.HTTP_200_OK if settings.errors_as_ok else exc.status_code
    return _error_response(status_code, exc.message, exc.code)


def _require_service() -> SearchService:
    if search_service is None:
        raise UpstreamUnavailableError("Search service not initialized")
    return search_service


# API Endpoints


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        dict: Health status, catalog backend and active search options
    """
    service = search_service
    return {
        "status": "healthy" if service else "starting",
        "service": "Live Product Search",
        "version": settings.api_version,
        "catalog": service.catalog.name if service else None,
        "search": service.config.summary() if service else None,
    }


@app.post(
    "/api/v1/search",
    response_model=SearchResponse,
    summary="Live product search",
    description=(
        "Search the catalog for an autocomplete panel. `data` is a product list, "
        "or an object with `products` and `categories` when category search "
        "found matching categories."
    ),
)
async def search_products(
    s: str = Form(default="", description="Search query"),
    query: str = Form(default="", description="Alternative name for the search query"),
    nonce: str | None = Form(default=None, description="Storefront token, checked by the host"),
) -> SearchResponse:
    """Run a live search.

    Args:
        s: Query as typed by the shopper
        query: Fallback field used when ``s`` is empty
        nonce: Accepted for compatibility with the storefront widget

    Returns:
        SearchResponse with the ranked products

    Raises:
        SearchError: Rendered by :func:`search_exception_handler`
    """
    service = _require_service()
    raw_query = s if s.strip() else query
    return await service.search(raw_query)


@app.get(
    "/api/v1/search/settings",
    summary="Storefront widget settings",
)
async def search_settings():
    """Settings and UI strings the storefront widget is configured with."""
    return _require_service().client_settings()


@app.get(
    "/api/v1/search/view-all",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Redirect to the full shop search results",
)
async def view_all_results(s: str = Query(default="", description="Search query")):
    """Redirect to the shop search page for ``s``."""
    url = _require_service().view_all_url(s)
    return RedirectResponse(url=url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@app.post(
    "/api/v1/search/config/reload",
    summary="Reload search options",
)
async def reload_search_config():
    """Re-read the option store and activate the new search options.

    Returns:
        dict: The active options after the reload
    """
    service = _require_service()
    try:
        config = service.reload_config()
    except (ValidationError, ValueError) as e:
        logger.warning(f"Search options reload rejected: {e}")
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Stored search options are invalid",
            "invalid_config",
        )
    return {"success": True, "data": config.summary()}
