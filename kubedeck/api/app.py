"""FastAPI application factory for kubedeck.

Usage::

    from kubedeck.api.app import create_app
    from kubedeck.services import build_services

    app = create_app(services=build_services(client), config=config)

The factory is used by both the production bootstrap (``kubedeck.app``) and
unit tests, which pass services built on a fake ClusterClient.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kubedeck.api.routes import router
from kubedeck.api.schemas import ErrorResponse
from kubedeck.api.websocket import ws_router
from kubedeck.errors import (
    ClusterConnectionError,
    InvalidRequestError,
    InvalidResponseShapeError,
    KubeDeckError,
    MetricsUnavailableError,
    ResourceNotFoundError,
    UpstreamError,
)
from kubedeck.models.config import KubeDeckConfig
from kubedeck.services import Services

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api"

_STATUS_BY_ERROR: dict[type[KubeDeckError], int] = {
    InvalidRequestError: 400,
    ResourceNotFoundError: 404,
    ClusterConnectionError: 502,
    InvalidResponseShapeError: 502,
    UpstreamError: 502,
    MetricsUnavailableError: 503,
}

_HTTP_ERROR_CODES = {
    400: "INVALID_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def status_for(exc: KubeDeckError) -> int:
    """HTTP status for a kubedeck error.

    Upstream 4xx rejections other than 404 (conflict, forbidden, invalid
    object) keep their status; everything else from the API server is 502.
    """
    if isinstance(exc, UpstreamError) and exc.status is not None and 400 <= exc.status < 500 and exc.status != 404:
        return exc.status
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


def create_app(services: Services, config: KubeDeckConfig | None = None) -> FastAPI:
    """Create and configure the kubedeck FastAPI application.

    Args:
        services: Collection services sharing one ClusterClient.
        config:   KubeDeckConfig.  Defaults apply when omitted.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kubedeck import __version__

    config = config or KubeDeckConfig()

    app = FastAPI(
        title="kubedeck",
        summary="Kubernetes cluster aggregation API",
        version=__version__,
        description=(
            "kubedeck lists nodes, pods, namespaces and workloads enriched with live "
            "usage metrics and pod phase counts, and relays exec and log streams over WebSocket."
        ),
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.services = services
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        _log.info(
            "http request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    app.include_router(router, prefix=_API_PREFIX)
    app.include_router(ws_router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(KubeDeckError)
    async def kubedeck_exception_handler(request: Request, exc: KubeDeckError) -> JSONResponse:
        status = status_for(exc)
        log = _log.warning if status < 500 else _log.error
        log(
            "request failed",
            path=str(request.url.path),
            method=request.method,
            error_code=exc.error_code,
            status=status,
            error=str(exc),
        )
        return JSONResponse(
            status_code=status,
            content=ErrorResponse(error=exc.error_code, detail=str(exc)).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to the error envelope."""
        errors = exc.errors()
        first_field = ""
        first_msg = ""
        if errors:
            locs = errors[0].get("loc", ())
            first_field = str(locs[-1]) if locs else ""
            first_msg = str(errors[0].get("msg", ""))
        detail = f"{first_field}: {first_msg}" if first_field else first_msg

        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_REQUEST", detail=detail).model_dump(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=_HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
                detail=str(exc.detail),
            ).model_dump(),
        )

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
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
