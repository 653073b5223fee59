"""RFC 7807 Problem Details exception handlers for FastAPI."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from src.core.exceptions import BookingBotError, ConfigurationError, ValidationError

_ERROR_TYPES = {
    400: "urn:redsaludbot:error:bad-request",
    404: "urn:redsaludbot:error:not-found",
    422: "urn:redsaludbot:error:validation",
    500: "urn:redsaludbot:error:internal-server",
    503: "urn:redsaludbot:error:service-unavailable",
}

_ERROR_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    422: "Validation Error",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _problem(request: Request, status_code: int, detail: str, **extra) -> JSONResponse:
    content = {
        "type": _ERROR_TYPES.get(status_code, f"urn:redsaludbot:error:http-{status_code}"),
        "title": _ERROR_TITLES.get(status_code, "Error"),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    content.update(extra)
    return JSONResponse(
        status_code=status_code,
        content=content,
        media_type="application/problem+json",
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Convert FastAPI HTTPException to RFC 7807 Problem Details format."""
    response = _problem(
        request,
        exc.status_code,
        exc.detail if isinstance(exc.detail, str) else str(exc.detail),
    )
    headers = getattr(exc, "headers", None) or {}
    response.headers.update(headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert Pydantic validation errors to RFC 7807 format."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors[field] = error["msg"]

    return _problem(request, 422, "Request validation failed", errors=errors)


async def booking_error_handler(request: Request, exc: BookingBotError) -> JSONResponse:
    """Convert booking errors that escape a route to RFC 7807 format."""
    if isinstance(exc, ValidationError):
        errors = {exc.field: exc.message} if exc.field else {}
        return _problem(request, 422, exc.message, errors=errors)
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error on {request.url.path}: {exc.message}")
        return _problem(request, 503, exc.message)

    logger.error(f"Unhandled booking error on {request.url.path}: {exc.message}")
    return _problem(request, 500, exc.message)
