"""
FastAPI application entry point.

Mounts the webhook receiver at the root and the authenticated API under
`{API_PREFIX}/v1`.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from badge_core.api import github_api
from badge_core.db import db
from badge_core.logging import RequestLoggingMiddleware, configure_logging, get_logger
from badge_core.security import get_encryption_service

from .config import get_settings
from .error_handlers import register_exception_handlers
from .middleware.request_id import RequestIDMiddleware
from .routers import badges as badges_router
from .routers import repositories as repositories_router
from .routers import webhooks as webhooks_router


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """413 for bodies above MAX_REQUEST_SIZE_MB, judged by Content-Length."""

    def __init__(self, app, max_size_mb: int = 5):
        super().__init__(app)
        self.max_size_mb = max_size_mb
        self.max_bytes = max_size_mb * 1024 * 1024

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_bytes:
            code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
            return JSONResponse(
                status_code=code,
                content={"detail": f"Maximum request size is {self.max_size_mb}MB", "status_code": code},
            )
        return await call_next(request)


settings = get_settings()
configure_logging(level="DEBUG" if settings.debug else "INFO")
logger = get_logger("api")


def wait_for_database(attempts: int = 3, backoff_seconds: float = 2.0) -> None:
    """
    Block until the database answers, backing off linearly.

    Raises:
        RuntimeError: the database never answered.
    """
    for attempt in range(1, attempts + 1):
        result = db.health_check()
        if result["healthy"]:
            logger.info("database_reachable", attempt=attempt, latency_ms=result["latency_ms"])
            return
        logger.warning("database_unreachable", attempt=attempt, attempts=attempts, error=result["error"])
        if attempt < attempts:
            time.sleep(backoff_seconds * attempt)

    raise RuntimeError(f"Database unreachable after {attempts} attempts; check DATABASE_URL")


def run_startup_checks() -> None:
    """Validate configuration, prepare the schema and report optional features."""
    errors, advisories = settings.validate_production_config()
    for advisory in advisories:
        logger.warning("config_warning", message=advisory)
    for error in errors:
        logger.error("config_error", error=error)
    if errors and settings.is_production:
        raise RuntimeError("Invalid production configuration")

    if not db.is_initialized:
        db.initialize(settings.database_url)
    db.create_all_tables()
    wait_for_database()

    logger.info(
        "features",
        token_encryption=get_encryption_service().is_available,
        webhooks_enabled=bool(settings.webhook_secret),
        statistics_source=settings.statistics_source,
    )
    if not settings.webhook_secret:
        logger.warning("webhook_secret_missing", message="All webhook deliveries will be rejected")


def create_app() -> FastAPI:
    api_prefix = f"{settings.api_prefix}/v1"

    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=settings.max_request_size_mb)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    # Added last runs first: the request id must exist before request logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        logger.info("app_startup", app_name=settings.app_name, env=settings.env)
        run_startup_checks()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("app_shutdown")

    @app.get("/health", tags=["health"])
    def health_check():
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/health/ready", tags=["health"])
    def readiness_check():
        """
        Readiness probe.

        Returns 503 when the database is unreachable. GitHub rate limit
        state is reported but never blocks readiness.
        """
        database = db.health_check()
        checks = {
            "database": database["healthy"],
            "github_rate_limit": github_api.get_rate_limit_status(),
        }
        if not checks["database"]:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "checks": checks},
            )
        return {"status": "ready", "checks": checks}

    app.include_router(webhooks_router.router)
    app.include_router(webhooks_router.events_router, prefix=api_prefix)
    app.include_router(repositories_router.router, prefix=api_prefix)
    app.include_router(badges_router.router, prefix=api_prefix)

    return app


app = create_app()
