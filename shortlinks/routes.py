"""FastAPI route definitions for the short-links REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/urls
        ├─ LinkCreate (request body)
        └─ LinkCreated (201 new, 200 reused) or 400/409/500/503

    POST /api/share-links
        ├─ ShareLinkCreate (request body)
        └─ ShareLinkCreated (201) or 400/500/503

    GET  /api/urls/exists/:short_path
        └─ ExistsResponse (200)

    GET  /api/urls/:short_path
        └─ LinkRecord (200) or 404

    GET  /:short_path
        └─ 302 Redirect or 404

Key Behaviours
===============
- Every /api request fires a best-effort expiry sweep in the background.
- Create failures return ``{"success": false, "error": ...}`` with a status
  chosen by error kind.
- Resolve failures are uniformly "not found".
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from shortlinks.config import Settings, get_settings
from shortlinks.dependencies import (
    RequestContext,
    get_lifecycle_manager,
    get_request_context,
    schedule_sweep,
)
from shortlinks.enums import HealthStatus
from shortlinks.exceptions import (
    ConflictError,
    ExhaustedRetriesError,
    InvalidInputError,
    ShortLinkError,
    StoreUnavailableError,
)
from shortlinks.lifecycle import LinkLifecycleManager
from shortlinks.schemas import (
    ErrorResponse,
    ExistsResponse,
    HealthResponse,
    LinkCreate,
    LinkCreated,
    LinkRecord,
    ShareLinkCreate,
    ShareLinkCreated,
)

__all__ = ["router", "api_router", "redirect_router"]

ERROR_STATUS_CODES: dict[type[ShortLinkError], int] = {
    InvalidInputError: 400,
    ConflictError: 409,
    ExhaustedRetriesError: 500,
    StoreUnavailableError: 503,
}

router = APIRouter()
api_router = APIRouter(prefix="/api", dependencies=[Depends(schedule_sweep)])
redirect_router = APIRouter()


def _error_response(exc: ShortLinkError) -> JSONResponse:
    status_code = next(
        (code for kind, code in ERROR_STATUS_CODES.items() if isinstance(exc, kind)),
        500,
    )
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=str(exc)).model_dump())


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "URL not found"})


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    lifecycle: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await lifecycle.store.ping()
    except StoreUnavailableError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await lifecycle.cache.ping()
    except StoreUnavailableError as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@api_router.post(
    "/urls",
    response_model=LinkCreated,
    status_code=201,
    responses={200: {"model": LinkCreated}, 400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["urls"],
)
async def create_link(
    payload: LinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    lifecycle: LinkLifecycleManager = Depends(get_lifecycle_manager),
):
    ctx.logger.info(f"Link creation requested: {payload.url}")
    try:
        created = await lifecycle.create(payload.url, payload.short_path, payload.expiration)
    except ShortLinkError as exc:
        ctx.logger.warning(f"Link creation failed: {exc} ({ctx.get_duration():.1f}ms)")
        return _error_response(exc)

    body = LinkCreated(
        short_path=created.record.short_path,
        original_url=created.record.original_url,
        is_existing=created.is_existing,
        expires_at=created.record.expires_at,
    )
    if created.is_existing:
        return JSONResponse(status_code=200, content=body.model_dump(by_alias=True))
    return body


@api_router.post(
    "/share-links",
    response_model=ShareLinkCreated,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    tags=["urls"],
)
async def create_share_link(
    payload: ShareLinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    lifecycle: LinkLifecycleManager = Depends(get_lifecycle_manager),
    settings: Settings = Depends(get_settings),
):
    try:
        record = await lifecycle.create_share_link(payload.url, payload.expiration)
    except ShortLinkError as exc:
        ctx.logger.warning(f"Share link creation failed: {exc}")
        return _error_response(exc)

    base_url = settings.BASE_URL.rstrip("/")
    return ShareLinkCreated(
        short_path=record.short_path,
        share_url=f"{base_url}/{record.short_path}",
        original_url=record.original_url,
        expires_at=record.expires_at,
    )


@api_router.get("/urls/exists/{short_path}", response_model=ExistsResponse, tags=["urls"])
async def link_exists(
    short_path: str,
    lifecycle: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> ExistsResponse:
    return ExistsResponse(exists=await lifecycle.exists(short_path))


@api_router.get(
    "/urls/{short_path}",
    response_model=LinkRecord,
    responses={404: {"description": "URL not found"}},
    tags=["urls"],
)
async def get_link(
    short_path: str,
    lifecycle: LinkLifecycleManager = Depends(get_lifecycle_manager),
):
    record = await lifecycle.resolve(short_path)
    if record is None:
        return _not_found()
    return record


@redirect_router.get("/{short_path}", tags=["redirect"])
async def redirect_to_url(
    short_path: str,
    ctx: RequestContext = Depends(get_request_context),
    lifecycle: LinkLifecycleManager = Depends(get_lifecycle_manager),
):
    record = await lifecycle.resolve(short_path)
    if record is None:
        ctx.logger.info(f"Redirect failed - short path not found: {short_path}")
        return PlainTextResponse("Link not found", status_code=404)

    ctx.logger.info(f"Redirect: {short_path} -> {record.original_url}")
    return RedirectResponse(url=record.original_url, status_code=302)
