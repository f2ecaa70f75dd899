"""FastAPI application entry point for the short-links service.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_app() │
    │ CORS, routes │
    │ /metrics     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ services,   │
    │ purge?,     │
    │ sweeper     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ stop sweeper│
    │ close stores│
    └─────────────┘

How to Use
===========
**Step 1: Run with uvicorn**::
    uvicorn shortlinks.main:app --host 0.0.0.0 --port 8080

**Step 2: Make API calls**::
    # Create
    curl -X POST http://localhost:8080/api/urls \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com/a", "shortPath": "te4t", "expiration": "7d"}'

    # Resolve
    curl -i http://localhost:8080/te4t

Key Behaviours
===============
- Database tables are created automatically on startup.
- ``PURGE_ON_STARTUP`` wipes both stores before serving.
- The expiry sweeper runs every ``SWEEP_INTERVAL_SECONDS`` (0 disables it).
- Store outages surface as 503 responses.
- Malformed request bodies surface as 400 ``{"success": false, "error": ...}``.
- ``/metrics`` is registered before the catch-all redirect route.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortlinks.config import Settings, get_settings
from shortlinks.dependencies import ServiceManager
from shortlinks.exceptions import StoreUnavailableError
from shortlinks.routes import api_router, redirect_router, router
from shortlinks.schemas import ErrorResponse


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content=ErrorResponse(error=str(exc)).model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "Invalid request body"
    errors = exc.errors()
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid {field or 'request body'}: {errors[0].get('msg')}"
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        services = ServiceManager(settings)
        await services.initialize()
        app.state.services = services
        if settings.PURGE_ON_STARTUP:
            await services.lifecycle.purge()
        if settings.SWEEP_INTERVAL_SECONDS > 0:
            services.sweeper.start()
        yield
        # Shutdown
        await services.cleanup()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Short path to URL mapping with expiring links",
        lifespan=lifespan,
    )

    origins = settings.allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(router)
    app.include_router(api_router)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(redirect_router)
    return app


app = create_app()
