"""
Structured logging for the badge engine, its API and its workers.

All three processes log through structlog. Context such as request_id,
delivery_id, repository_id or task_id is carried in contextvars so every
line emitted while handling one request, delivery or task is tagged with it.
"""

import logging
import os
import sys
import time
from collections.abc import Callable, MutableMapping
from functools import lru_cache, wraps
from typing import Any, TypeVar

import structlog
from structlog.types import EventDict, Processor

F = TypeVar("F", bound=Callable[..., Any])

SERVICE_NAME = "contribution_badges"

# Values under these keys never reach the log output
REDACTED_KEYS = frozenset(
    {
        "authorization",
        "signature",
        "webhook_secret",
        "token",
        "access_token",
        "github_access_token",
        "pat_token",
    }
)

# Paths polled by load balancers; logged at debug only
QUIET_PATHS = frozenset({"/health", "/health/ready"})

WEBHOOK_DELIVERY_HEADER = b"x-delivery-id"
WEBHOOK_EVENT_HEADER = b"x-event-type"


def _use_console_renderer() -> bool:
    from .config import get_settings

    return get_settings().debug or os.getenv("ENV", "development") == "development"


def _add_service(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _redact_secrets(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> EventDict:
    for key in REDACTED_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "[redacted]"
    return event_dict  # type: ignore[return-value]


def get_processors() -> list[Processor]:
    """Processor chain: console rendering in development, JSON lines otherwise."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _add_service,
        _redact_secrets,
    ]
    if _use_console_renderer():
        processors.append(structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback))
    else:
        processors.extend([structlog.processors.format_exc_info, structlog.processors.JSONRenderer()])
    return processors


@lru_cache(maxsize=1)
def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog. Repeated calls are no-ops."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    # SQL echo is controlled by DATABASE_ECHO, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    structlog.configure(
        processors=get_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = SERVICE_NAME) -> structlog.stdlib.BoundLogger:
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)  # type: ignore[no-any-return]


# =============================================================================
# Context
# =============================================================================


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """
    Bind log context for the duration of a block.

    Keys that were already bound are restored on exit, so nesting a
    repository context inside a delivery context leaves the delivery
    context intact.

    Usage:
        with LogContext(delivery_id="abc", event_type="pull_request"):
            with LogContext(repository_id=12):
                logger.info("awarding")  # delivery_id, event_type, repository_id
            logger.info("recorded")      # delivery_id, event_type
    """

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self._tokens: Any = None

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        structlog.contextvars.reset_contextvars(**self._tokens)
        return False


def log_timing(operation: str, logger: structlog.stdlib.BoundLogger | None = None) -> Callable[[F], F]:
    """
    Log how long the wrapped call took, and whether it raised.

    Usage:
        @log_timing("batch_award")
        def award_for_repository(...):
            ...
    """

    def decorator(func: F) -> F:
        _logger = logger or get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            failed: BaseException | None = None
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                failed = exc
                raise
            finally:
                duration = round(time.perf_counter() - start, 3)
                if failed is None:
                    _logger.info("operation_complete", operation=operation, duration_seconds=duration)
                else:
                    _logger.error(
                        "operation_failed",
                        operation=operation,
                        duration_seconds=duration,
                        error=str(failed),
                    )

        return wrapper  # type: ignore[return-value]

    return decorator


# =============================================================================
# HTTP
# =============================================================================


class RequestLoggingMiddleware:
    """
    ASGI middleware logging one line per request.

    Runs inside RequestIDMiddleware and reuses the request id it put in
    scope state. Webhook deliveries additionally carry their delivery id
    and event type.
    """

    def __init__(self, app):
        self.app = app
        self._logger: structlog.stdlib.BoundLogger | None = None

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if self._logger is None:
            self._logger = get_logger("http")
        return self._logger

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        method = scope.get("method", "")
        context: dict[str, Any] = {}
        headers = dict(scope.get("headers") or [])
        if WEBHOOK_DELIVERY_HEADER in headers:
            context["delivery_id"] = headers[WEBHOOK_DELIVERY_HEADER].decode("latin-1")
            context["event_type"] = headers.get(WEBHOOK_EVENT_HEADER, b"").decode("latin-1") or None
        request_id = scope.get("state", {}).get("request_id")
        if request_id:
            context["request_id"] = request_id
        bind_context(**context)

        status_code = 500
        start = time.perf_counter()

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            if status_code >= 500:
                log = self.logger.error
            elif status_code >= 400:
                log = self.logger.warning
            elif path in QUIET_PATHS:
                log = self.logger.debug
            else:
                log = self.logger.info
            log(
                "request_complete",
                method=method,
                path=path,
                status_code=status_code,
                duration_seconds=round(time.perf_counter() - start, 3),
            )
            clear_context()


# =============================================================================
# Celery
# =============================================================================


def configure_celery_logging() -> None:
    """Bind task ids into the log context and log task lifecycle events."""
    from celery.signals import task_failure, task_postrun, task_prerun, task_retry

    logger = get_logger("celery.tasks")

    @task_prerun.connect(weak=False)
    def on_task_prerun(task_id, task, args, kwargs, **extra):
        bind_context(task_id=task_id, task_name=task.name)
        logger.info("task_started", retries=task.request.retries)

    @task_retry.connect(weak=False)
    def on_task_retry(request, reason, **extra):
        logger.warning("task_retry_scheduled", reason=str(reason), retries=request.retries)

    @task_postrun.connect(weak=False)
    def on_task_postrun(task_id, task, args, kwargs, retval, state, **extra):
        logger.info("task_completed", state=state)
        clear_context()

    @task_failure.connect(weak=False)
    def on_task_failure(task_id, exception, args, kwargs, traceback, einfo, **extra):
        logger.error("task_failed", error=str(exception), error_type=type(exception).__name__)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    "log_timing",
    "RequestLoggingMiddleware",
    "configure_celery_logging",
]
