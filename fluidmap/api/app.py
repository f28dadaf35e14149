"""FastAPI application factory for fluidmap.

Usage::

    from fluidmap.api.app import create_app

    app = create_app(client=query_client, config=config)

The factory serves both ``fluidmap serve`` and unit tests.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from fluidmap.api.routes import router
from fluidmap.api.schemas import ErrorResponse
from fluidmap.k8s.client import QueryClient
from fluidmap.k8s.errors import ClusterUnreachableError, ForbiddenError, NotFoundError, QueryError
from fluidmap.mapper import Mapper
from fluidmap.models.config import FluidMapConfig

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, detail=detail).model_dump())


def create_app(client: QueryClient, config: FluidMapConfig | None = None) -> FastAPI:
    """Create and configure the fluidmap FastAPI application.

    Args:
        client: Query Interface the mapper reads from.  The caller owns it
                and closes it after the server stops.
        config: Used for the mapping deadline and cluster_id metadata.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from fluidmap import __version__

    config = config or FluidMapConfig()

    app = FastAPI(
        title="fluidmap",
        summary="Fluid Dataset resource mapper",
        version=__version__,
        description=(
            "Maps a Fluid Dataset to the Kubernetes objects that implement it "
            "and reports what is missing or unhealthy."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.client = client
    app.state.config = config
    app.state.cluster_id = config.cluster_id or client.cluster_name
    app.state.mapper = Mapper(client, timeout=config.mapper.timeout_seconds)

    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        detail = ""
        if errors:
            locs = errors[0].get("loc", ())
            field = str(locs[-1]) if locs else ""
            detail = f"{field}: {errors[0].get('msg', '')}" if field else str(errors[0].get("msg", ""))
        return _error(400, "INVALID_REQUEST", detail)

    @app.exception_handler(ClusterUnreachableError)
    async def unreachable_exception_handler(
        request: Request,
        exc: ClusterUnreachableError,
    ) -> JSONResponse:
        _log.warning("cluster_unreachable", path=str(request.url.path), error=str(exc))
        return _error(503, "CLUSTER_UNREACHABLE", str(exc))

    @app.exception_handler(QueryError)
    async def query_exception_handler(
        request: Request,
        exc: QueryError,
    ) -> JSONResponse:
        # Only reachable from the listing endpoint; mapping turns these into warnings.
        _log.warning("query_failed", path=str(request.url.path), error=str(exc))
        if isinstance(exc, ForbiddenError):
            return _error(403, "FORBIDDEN", str(exc))
        if isinstance(exc, NotFoundError):
            return _error(404, "NOT_FOUND", str(exc))
        return _error(502, "QUERY_FAILED", str(exc))

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app
