"""
Ban Data Service - Main Application
===================================

FastAPI application serving the cached ban data feed and the static
supplemental information file.

Version: 0.1.0
"""

import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from services.ban_data import __version__
from services.ban_data.errors import CacheEmptyError, LoadError
from services.ban_data.routes import data, supplemental
from services.ban_data.service import DataService, build_data_service
from shared.config import settings
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="ban-data",
    service_version=__version__,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "ban_data_starting",
        environment=settings.environment.value,
        host=settings.server.host,
        port=settings.server.port,
        source_url=settings.ban_data.source_url,
        ttl_hours=settings.ban_data.ttl_hours,
    )

    # Tests may install their own service before startup
    if getattr(app.state, "data_service", None) is None:
        app.state.data_service = build_data_service(settings)

    yield

    # Shutdown
    logger.info("ban_data_shutting_down")
    service: DataService = app.state.data_service
    await service.close()


# Create FastAPI application
app = FastAPI(
    title="Banwatch Ban Data Service",
    description="Cached ban/regulation records by state, city and zip",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=[
        data.STALE_HEADER,
        data.ERROR_HEADER,
        data.FETCHED_AT_HEADER,
        REQUEST_ID_HEADER,
    ],
)


@app.middleware("http")
async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind the request id and path to every log entry of the request."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    clear_context()
    bind_context(request_id=request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Service health check.

    Healthy while fresh data is cached; degraded otherwise.
    """
    service: DataService = request.app.state.data_service
    state = service.cache.state
    dataset = state.dataset
    fresh = dataset is not None and service.cache.is_fresh(dataset)

    cache_component: dict[str, Any] = {
        "status": "healthy" if fresh else "degraded",
        "has_data": dataset is not None,
        "fresh": fresh,
        "records": len(dataset) if dataset is not None else 0,
        "fetched_at": dataset.fetched_at.isoformat() if dataset is not None else None,
        "ttl_seconds": state.ttl.total_seconds(),
        "refresh_in_flight": service.refresh_in_flight,
        "last_error": str(state.last_fetch_error) if state.last_fetch_error else None,
    }

    return HealthResponse(
        status="healthy" if fresh else "degraded",
        service="ban-data",
        version=__version__,
        components={"cache": cache_component},
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Banwatch Ban Data Service",
        "version": __version__,
        "data": "/data",
        "supplemental": "/supplemental",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(data.router, tags=["Data"])
app.include_router(supplemental.router, tags=["Supplemental"])


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(CacheEmptyError)
async def cache_empty_handler(request: Request, exc: CacheEmptyError) -> JSONResponse:
    """No data has ever been fetched: 503."""
    logger.error("data_unavailable", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorResponse(error=str(exc), error_code="cache_empty").model_dump(mode="json"),
    )


@app.exception_handler(LoadError)
async def load_error_handler(request: Request, exc: LoadError) -> JSONResponse:
    """Supplemental file missing or corrupt: 500."""
    logger.error("supplemental_unavailable", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=str(exc), error_code="load_error").model_dump(mode="json"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.ban_data.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
