"""Request tracing and structlog setup."""

import logging
import sys
import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
_UNLOGGED_PATHS = frozenset({"/health", "/favicon.ico"})


def _access_event(status: int) -> tuple[str, str]:
    if status >= 500:
        return "error", "request_error"
    if status >= 400:
        return "warning", "request_client_error"
    return "info", "request"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tags every log line of a request with its request ID; one access line per request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)
        response.headers[REQUEST_ID_HEADER] = request_id

        path = request.url.path
        if path not in _UNLOGGED_PATHS:
            level, event = _access_event(response.status_code)
            getattr(logger, level)(
                event,
                method=request.method,
                path=path,
                status=response.status_code,
                duration_ms=elapsed_ms,
            )
        return response


def configure_logging(log_level: str = "INFO", log_format: str = "json"):
    """Route structlog to stdout, rendered as JSON lines or, with ``console``, for humans."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if log_format == "console":
        renderers = [structlog.dev.ConsoleRenderer()]
    else:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
