"""FastAPI application entry point for the shortlinks service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────────┐
    │  uvicorn startup │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ create_app()     │
    │ CORS, logging,   │
    │ routes, metrics  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ lifespan start:  │
    │ engine, tables,  │
    │ LinkStore        │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ Serve HTTP       │
    │ requests         │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ lifespan end:    │
    │ close_db()       │
    └──────────────────┘

How to Use
===========
**Step 1: Run with uvicorn**::
    uvicorn shortlinks.main:app --host 0.0.0.0 --port 8000

**Step 2: Make API calls**::
    # Health check
    curl http://localhost:8000/health

    # Shorten URL
    curl -X POST http://localhost:8000/api/links \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com/page", "caption": "Example"}'

    # Follow a short link
    curl -i http://localhost:8000/<code>

Key Behaviours
===============
- The database engine is opened in the lifespan and disposed on shutdown.
- Tables are created automatically on startup.
- Every request line is logged together with its Origin header.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shortlinks.config import Settings, get_settings
from shortlinks.database import close_db, create_engine_from_settings, init_db
from shortlinks.logger import get_logger
from shortlinks.routes import health_router, links_router, redirect_router
from shortlinks.store import LinkStore


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger = get_logger(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app_settings = app.state.settings
        # Startup
        engine = create_engine_from_settings(app_settings)
        await init_db(engine)
        app.state.link_store = LinkStore.from_engine(engine)
        logger.info(f"Connected to database, serving {app_settings.APP_NAME}")
        yield
        # Shutdown
        await close_db(engine)
        logger.info("Database connections closed")

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Short links with redirect click counting",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Origin", "Accept"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        logger.info(f"[REQ] {request.method} {request.url.path} Origin={request.headers.get('origin', '-')}")
        return await call_next(request)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(health_router)
    app.include_router(links_router, prefix=settings.API_PREFIX)
    app.include_router(redirect_router)
    return app


app = create_app()
