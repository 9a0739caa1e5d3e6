"""
REST API Layer for AI Mandalart.

Provides:
- FastAPI application with CORS middleware
- Session-scoped endpoints for every wizard operation
- Health check and API versioning under /api/v1 prefix
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mandalart import __version__
from mandalart.api.dependencies import get_language
from mandalart.api.routes import router
from mandalart.api.schemas import error_response
from mandalart.config.settings import Settings, get_settings
from mandalart.lib.errors import INTERNAL_ERROR, SESSION_CHANGED, VALIDATION_ERROR
from mandalart.lib.exceptions import ConfigurationError, SessionChangedError
from mandalart.lib.logging import clear_log_context
from mandalart.services.session_store import close_session_storage
from mandalart.services.suggestion_service import close_suggestion_service

logger = logging.getLogger(__name__)

_ALLOWED_HEADERS: list[str] = [
    "Content-Type",
    "Accept",
    "Accept-Language",
    "X-Request-ID",
]


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_suggestion_service()
    await close_session_storage()


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Includes:
    - CORS middleware with origins from MANDALART_CORS_ORIGINS
    - Global exception handlers returning the error envelope
    - API v1 router with all endpoints
    - Root-level health check for load balancer probes
    - Production: /docs and /redoc disabled

    Raises:
        ConfigurationError: Wildcard CORS origin in production
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="AI Mandalart",
        description="Guided wizard that turns one goal into a 9x9 Mandalart",
        version=__version__,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=_lifespan,
    )

    # -------------------------------------------------------------------------
    # Global exception handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_response(VALIDATION_ERROR, details={"errors": jsonable_errors(exc)}),
        )

    @app.exception_handler(SessionChangedError)
    async def session_changed_handler(
        request: Request, exc: SessionChangedError,
    ) -> JSONResponse:
        logger.info("Discarded stale result: %s", exc)
        lang = get_language(request, request.query_params.get("lang"))
        return JSONResponse(status_code=409, content=error_response(SESSION_CHANGED, lang=lang))

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path,
        )
        return JSONResponse(status_code=500, content=error_response(INTERNAL_ERROR))

    @app.middleware("http")
    async def reset_log_context(request: Request, call_next):  # type: ignore[no-untyped-def]
        clear_log_context()
        return await call_next(request)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    cors_origins = list(settings.cors_origins)
    if settings.is_production and "*" in cors_origins:
        raise ConfigurationError(
            "MANDALART_CORS_ORIGINS contains wildcard '*' which is forbidden in production"
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=_ALLOWED_HEADERS,
    )

    if cors_origins:
        logger.info("CORS enabled for origins: %s", cors_origins)

    app.include_router(router)

    @app.get("/health")
    async def root_health_check() -> dict[str, str]:
        """Root health check for infrastructure probes."""
        return {"status": "ok"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    """Field location and message of each validation error."""
    return [
        {"loc": ".".join(str(part) for part in error.get("loc", ())), "msg": str(error.get("msg", ""))}
        for error in exc.errors()
    ]


__all__ = ["create_app", "router"]
