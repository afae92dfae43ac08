# src/spotshare/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance, owns the client `Session` for the lifetime of
the process (created on startup, torn down on shutdown) and maps the error taxonomy
onto HTTP status codes. Route logic lives in `spotshare.api.routes`.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from spotshare.backend.base import Backend
from spotshare.config.settings import Settings, get_settings
from spotshare.core.errors import (
    AuthFailure,
    FeedFailure,
    GeolocationFailure,
    PersistenceFailure,
    SpotShareError,
    Unauthenticated,
)
from spotshare.core.logging import configure_logging
from spotshare.session import Session, build_backend

from .routes import router

_STATUS_BY_ERROR: list[tuple[type[SpotShareError], int]] = [
    (Unauthenticated, 401),
    (AuthFailure, 400),
    (GeolocationFailure, 503),
    (PersistenceFailure, 502),
    (FeedFailure, 502),
]


async def _spotshare_error_handler(_: Request, exc: Exception) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


def create_app(settings: Settings | None = None, backend: Backend | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session = Session(settings, backend or build_backend(settings))
        await session.start()
        app.state.session = session
        try:
            yield
        finally:
            await session.aclose()

    app = FastAPI(title="SpotShare API", version="0.1.0", lifespan=lifespan)

    # CORS (dev-friendly): allow local frontends to call this API.
    # Configure via env:
    # - SPOTSHARE_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
    # - SPOTSHARE_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
    cors_origins = [s.strip() for s in os.getenv("SPOTSHARE_CORS_ORIGINS", "").split(",") if s.strip()]
    cors_allow_local = os.getenv("SPOTSHARE_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
    cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
    if cors_origins or cors_origin_regex:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_origin_regex=cors_origin_regex or None,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(SpotShareError, _spotshare_error_handler)
    app.include_router(router)
    return app


configure_logging()

app = create_app()
