"""Dependency health REST API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dephealth import __version__
from dephealth.api.deps import dispose_resources, init_resources
from dephealth.api.errors import register_error_handlers
from dephealth.api.middleware.request_id import RequestIDMiddleware
from dephealth.api.routers import insights
from dephealth.core.config import Settings
from dephealth.core.logging import setup_logging

log = structlog.get_logger("dephealth.api")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup: create shared clients and cache. Shutdown: close them."""
        init_resources(settings)
        log.info(
            "app.started",
            version=__version__,
            concurrency=settings.concurrency,
            cache_ttl=settings.cache_ttl,
            authenticated=settings.github_token is not None,
        )
        yield
        await dispose_resources()

    app = FastAPI(
        title="dephealth",
        version=__version__,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(insights.router, prefix="/api/github", tags=["insights"])

    return app
