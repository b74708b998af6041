# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""IECA Server - Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ieca_server.config import Settings, settings as default_settings
from ieca_server.database import Database
from ieca_server.errors import register_exception_handlers
from ieca_server.routers import analytics, auth, blog, email, global_chat, notifications, resources, security

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _get_cors_origins(settings: Settings) -> list[str]:
    raw = (settings.cors_origins or "*").strip()
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the application around an explicitly provided database.

    When no database is given one is built from settings. The database is
    attached to app.state before any request is served, so test clients that
    skip the lifespan still get a working session dependency.
    """
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level.upper())
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        if settings.create_tables_on_startup:
            await database.create_all()
        if not settings.smtp_host:
            logger.info("SMTP_HOST not set - emails will be logged instead of sent")
        yield
        await database.dispose()

    app = FastAPI(
        title="IECA Server",
        description="Community platform API: members, blog, resources, chat and email",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.db = database
    app.state.settings = settings

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log method, path, status, and duration for each request (no body or auth headers)."""
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, duration_ms)
        return response

    # API v1
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(global_chat.router, prefix="/api/v1")
    app.include_router(blog.router, prefix="/api/v1")
    app.include_router(resources.router, prefix="/api/v1")
    app.include_router(email.router, prefix="/api/v1")
    app.include_router(security.router, prefix="/api/v1")
    app.include_router(analytics.router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Health check / API info."""
        return {
            "name": "IECA Server",
            "version": VERSION,
            "api": "/api/v1",
            "docs": "/api/docs",
        }

    @app.get("/api/v1/health")
    async def health():
        """Health check for load balancers."""
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run("ieca_server.main:app", host=default_settings.host, port=default_settings.port)
