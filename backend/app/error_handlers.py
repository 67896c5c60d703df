"""
Exception handlers for the FastAPI app.

Request IDs are logged server-side for tracing but never returned to the
caller. Unhandled errors get a generic message.
"""

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from badge_core.exceptions import BadgeEngineError, UpstreamFetchError
from badge_core.logging import get_logger

logger = get_logger("backend.errors")


def _get_request_id() -> str:
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("request_id", "-")


def _response_payload(detail: str, status_code: int) -> dict:
    return {
        "detail": detail,
        "status_code": status_code,
    }


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "http_exception",
            detail=exc.detail,
            status_code=exc.status_code,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_response_payload(str(exc.detail), exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(BadgeEngineError)
    async def engine_exception_handler(request: Request, exc: BadgeEngineError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        extra = {}
        if isinstance(exc, UpstreamFetchError):
            extra["upstream_status"] = exc.upstream_status
        log(
            "engine_error",
            error=str(exc),
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            request_id=_get_request_id(),
            **extra,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_response_payload(str(exc), exc.status_code),
        )

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        errors = exc.errors(include_url=False, include_context=False)
        logger.warning(
            "validation_error",
            errors=errors,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=422,
            content={
                **_response_payload("Validation error", 422),
                "errors": errors,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        # Full details stay server-side
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=500,
            content=_response_payload("Internal server error", 500),
        )
