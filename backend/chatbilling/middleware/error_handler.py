"""Global error handling middleware."""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from chatbilling.config import get_settings
from chatbilling.errors import AppError

logger = structlog.get_logger()


def _error_body(message: str, code: str, **extra) -> dict:
    return {"error": {"message": message, "code": code, **extra}}


def register_error_handlers(app: FastAPI):
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Typed business and client errors keep their own status and code."""
        logger.info(
            "app_error",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            status=exc.status_code,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.code),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Return structured validation errors."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(l) for l in error.get("loc", []))
            errors.append({
                "field": loc,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "value_error"),
            })

        logger.warning(
            "validation_error",
            path=request.url.path,
            method=request.method,
            errors=errors,
        )

        return ORJSONResponse(
            status_code=422,
            content=_error_body("Validation error", "VALIDATION_ERROR", fields=errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions - log and return 500."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            traceback=traceback.format_exc(),
        )

        extra = {}
        if get_settings().ENVIRONMENT == "development":
            extra["details"] = str(exc)

        return ORJSONResponse(
            status_code=500,
            content=_error_body("Internal server error", "INTERNAL_ERROR", **extra),
        )
