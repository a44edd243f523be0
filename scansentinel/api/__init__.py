"""ScanSentinel REST API — FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scansentinel.api.deps import init_pipeline, init_session_factory, shutdown
from scansentinel.api.errors import register_error_handlers
from scansentinel.api.middleware.request_id import RequestIDMiddleware
from scansentinel.api.routers import scans
from scansentinel.core.logging import setup_logging

log = structlog.get_logger("scansentinel.api")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: init DB + pipeline, start workers. Shutdown: stop workers, dispose engine."""
    factory = init_session_factory()
    _, scheduler = init_pipeline(factory)
    await scheduler.start()
    log.info("app.started")
    yield
    await scheduler.stop()
    await shutdown()
    log.info("app.stopped")


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="ScanSentinel",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    cors_origins = os.environ.get("SCANSENTINEL_CORS_ORIGINS", "http://localhost:3000")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(scans.router, prefix="/api/v1/scans", tags=["scans"])

    return app
