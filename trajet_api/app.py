"""
FastAPI application factory.

Wires middleware (CORS, security headers, request logging), the auth and
trajet routers, and the single place where service errors become HTTP
responses.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from trajet_api.core.config import get_settings
from trajet_api.core.logger import configure_logging, get_logger
from trajet_api.db.create_tables import create_all
from trajet_api.routers import auth as auth_router
from trajet_api.routers import trajets as trajets_router
from trajet_api.services.errors import (
    AlreadyVerifiedError,
    ConflictError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    NotificationFailure,
    PersistenceFailure,
    ServiceError,
    UnverifiedError,
    ValidationError,
)

logger = get_logger("http")

ERROR_STATUS = {
    ValidationError: 400,
    ConflictError: 409,
    NotFoundError: 404,
    AlreadyVerifiedError: 400,
    InvalidCodeError: 400,
    InvalidCredentialsError: 401,
    UnverifiedError: 403,
    InvalidOrExpiredTokenError: 400,
    NotificationFailure: 502,
    PersistenceFailure: 500,
}

_DEV_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers for a JSON-only API."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, response status and latency; bodies are never logged."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s | status=%d latency=%.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def status_for(exc: ServiceError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = status_for(exc)
    body = {"message": exc.message}
    if isinstance(exc, UnverifiedError) and exc.principal_id:
        body["userId"] = exc.principal_id
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(body, status_code=status_code)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        create_all()
        logger.info("Trajet API starting up (%s)", settings.app_env)
        yield

    app = FastAPI(title="Trajet API", lifespan=lifespan)

    allowed = set(settings.cors_origins) or {settings.public_base_url}
    if settings.app_env != "prod":
        allowed.update(_DEV_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(origin for origin in allowed if origin),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    app.add_middleware(RequestLogMiddleware)

    app.add_exception_handler(ServiceError, service_error_handler)

    app.include_router(auth_router.router)
    app.include_router(auth_router.driver_router)
    app.include_router(trajets_router.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
