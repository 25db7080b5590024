from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from app.core.config import settings
from app.utils.response import error_response

logger = structlog.get_logger()


def _message_and_errors(detail):
    """Split an HTTPException detail into the envelope's message and errors."""
    if isinstance(detail, str):
        return detail, []
    if isinstance(detail, list):
        return "Request failed", detail
    if isinstance(detail, dict):
        return detail.get("message", "Request failed"), detail.get("errors", [])
    return "Request failed", []


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message, errors = _message_and_errors(exc.detail)
    if exc.status_code >= 500:
        logger.error("request_failed", status_code=exc.status_code, detail=message, path=request.url.path)
    return error_response(
        status_code=exc.status_code,
        message=message,
        errors=errors,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation failed",
        errors=exc.errors(),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(exc.detail))
    return error_response(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        message="Too many requests. Please try again later.",
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception", error_type=type(exc).__name__, detail=str(exc))

    if settings.DEBUG and settings.ENVIRONMENT != "production":
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=f"Internal server error: {exc}",
            errors=[{"type": type(exc).__name__}],
        )

    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="Internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API in the ``{success, message, data, errors}`` envelope."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
