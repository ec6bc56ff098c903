"""Route handlers for the kubetopo REST API.

Dependencies are read from ``request.app.state``:
    service -- TopologyService
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST

from kubetopo.api.schemas import (
    ApplicationModel,
    ErrorResponse,
    HealthResponse,
    ResourceIdentityModel,
    SceneResponse,
)
from kubetopo.observability.metrics import render_latest
from kubetopo.service import TopologyService

router = APIRouter()


def _service(request: Request) -> TopologyService:
    return request.app.state.service  # type: ignore[no-any-return]


def _not_found(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(error="NOT_FOUND", detail=detail).model_dump(),
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from kubetopo import __version__

    return HealthResponse(status="ok", version=__version__)


@router.get("/applications", response_model=SceneResponse)
async def list_applications(
    request: Request,
    namespace: str | None = Query(default=None, max_length=253),
    refresh: bool = Query(default=False),
) -> SceneResponse:
    """Return every application of the namespace scope, packed onto one canvas."""
    result = await _service(request).get(namespace, force=refresh)
    return SceneResponse.from_result(result)


@router.get("/applications/{app_id:path}", response_model=ApplicationModel)
async def get_application(
    request: Request,
    app_id: str,
    namespace: str | None = Query(default=None, max_length=253),
) -> ApplicationModel | JSONResponse:
    result = await _service(request).get(namespace)
    app = result.find_application(app_id)
    if app is None:
        return _not_found(f"application {app_id!r} not found")
    return ApplicationModel.from_model(app)


@router.get("/resources/{uid}", response_model=ResourceIdentityModel)
async def get_resource(
    request: Request,
    uid: str,
    namespace: str | None = Query(default=None, max_length=253),
) -> ResourceIdentityModel | JSONResponse:
    """Return the detail-lookup identity of one resource of the current snapshot."""
    result = await _service(request).get(namespace)
    identity = result.identities.get(uid)
    if identity is None:
        return _not_found(f"resource {uid!r} not found")
    return ResourceIdentityModel.from_model(identity)


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=render_latest(), media_type=CONTENT_TYPE_LATEST)
