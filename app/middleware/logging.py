"""Structured logging setup and per-request log context."""

import logging
import sys
import time
import uuid
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

REQUEST_ID_HEADER = "X-Request-ID"
CLINIC_ID_HEADER = "X-Clinic-Id"
IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"

# Health checks and metrics scrapes are not logged per request
QUIET_PATHS = frozenset({"/metrics", f"{settings.api_v1_prefix}/health", f"{settings.api_v1_prefix}/ping"})


def configure_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: Level name, defaults to ``LOG_LEVEL``
        log_format: ``json`` or ``console``, defaults to ``LOG_FORMAT``
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    renderer: structlog.types.Processor
    if (log_format or settings.log_format) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # Requests are logged by LoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def resolve_request_id(request: Request) -> str:
    """Reuse a caller-supplied request id when it is sane, otherwise mint one."""
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= 128 and supplied.isprintable():
        return supplied
    return uuid.uuid4().hex


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind request, clinic and timing context and log each request once it finishes."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        """
        Run the request inside a bound log context.

        Args:
            request: Request object
            call_next: Next middleware in chain

        Returns:
            Response carrying ``X-Request-ID`` and ``X-Process-Time``
        """
        logger = structlog.get_logger()
        request_id = resolve_request_id(request)
        path = request.url.path
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            clinic_id=request.headers.get(CLINIC_ID_HEADER),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if path not in QUIET_PATHS:
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                idempotency_key_sent=IDEMPOTENCY_KEY_HEADER in request.headers,
            )

        response.headers["X-Process-Time"] = str(duration_ms / 1000)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
