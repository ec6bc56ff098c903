"""FastAPI application factory for kubetopo.

Usage::

    from kubetopo.api.app import create_app

    app = create_app(service=service, config=config)

The factory is used by both the production bootstrap (``kubetopo.app``)
and unit tests.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kubetopo.api.routes import router
from kubetopo.api.schemas import ErrorResponse
from kubetopo.observability.logging import get_logger
from kubetopo.service import TopologyUnavailableError

_log = get_logger("api.app")

_API_PREFIX = "/api/v1"


def create_app(service: Any, config: Any = None) -> FastAPI:
    """Create and configure the kubetopo FastAPI application.

    Args:
        service: TopologyService instance.
        config:  KubeTopoConfig, kept on ``app.state`` for handlers.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kubetopo import __version__

    app = FastAPI(
        title="kubetopo",
        summary="Kubernetes application topology API",
        version=__version__,
        description=(
            "kubetopo groups cluster resources into applications and lays "
            "them out on a canvas for diagram renderers."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.service = service
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to our error envelope."""
        errors = exc.errors()
        first_msg = ""
        if errors:
            locs = errors[0].get("loc", ())
            field = str(locs[-1]) if locs else ""
            first_msg = f"{field}: {errors[0].get('msg', '')}" if field else str(errors[0].get("msg", ""))

        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_REQUEST", detail=first_msg).model_dump(),
        )

    @app.exception_handler(TopologyUnavailableError)
    async def unavailable_exception_handler(
        request: Request,
        exc: TopologyUnavailableError,
    ) -> JSONResponse:
        _log.warning("topology_unavailable", path=str(request.url.path), error=str(exc))
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(error="TOPOLOGY_UNAVAILABLE", detail=str(exc)).model_dump(),
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
