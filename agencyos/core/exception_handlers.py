"""
FastAPI exception handlers for custom exceptions.

WHY: Exception handlers convert every error into the same JSON envelope
(``{"error", "code", "details"}``) with the right HTTP status code, so no
error reaches the transport layer unhandled and no stack trace or store
error text is exposed to clients.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from agencyos.core.exceptions import (
    AppException,
    ConflictError,
    DatabaseError,
    RateLimitExceeded,
    ValidationError,
)

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"

HTTP_STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


def translate_store_error(exc: SQLAlchemyError) -> AppException:
    """
    Map a store error onto the application taxonomy.

    WHY: Constraint violations are caused by client input (duplicate email,
    unknown company id) and must surface as 409/400, not as a 500 with the
    driver's message.

    Args:
        exc: Error raised by SQLAlchemy

    Returns:
        The AppException to report instead
    """
    if not isinstance(exc, IntegrityError):
        return DatabaseError()

    # asyncpg errors expose the SQLSTATE as pgcode/sqlstate
    sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    text = str(exc.orig).lower()

    if sqlstate == UNIQUE_VIOLATION or "unique constraint" in text:
        return ConflictError("A record with these values already exists")
    if sqlstate == FOREIGN_KEY_VIOLATION or "foreign key constraint" in text:
        return ValidationError("Referenced record does not exist")
    if sqlstate == NOT_NULL_VIOLATION or "not null constraint" in text:
        return ValidationError("A required field is missing")
    return DatabaseError()


def error_response(exc: AppException) -> JSONResponse:
    """Build the JSON response for an application exception."""
    headers = None
    if isinstance(exc, RateLimitExceeded) and "retry_after" in exc.context:
        headers = {
            "Retry-After": str(exc.context["retry_after"]),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(exc.context["retry_after"]),
        }
        if "limit" in exc.context:
            headers["X-RateLimit-Limit"] = str(exc.context["limit"])
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom AppException and its subclasses.

    Args:
        request: The FastAPI request object
        exc: The custom exception instance

    Returns:
        JSONResponse with error details
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    WHY: Request body and query validation failures are reported as 400
    VALIDATION_ERROR with field-level messages to help users correct input.

    Args:
        request: The FastAPI request object
        exc: The Pydantic validation error

    Returns:
        JSONResponse with validation error details
    """
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
            }
        )

    message = errors[0]["message"] if len(errors) == 1 else "Request validation failed"
    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "code": "VALIDATION_ERROR",
            "details": {"errors": errors},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle Starlette HTTP exceptions.

    WHY: Some HTTP exceptions (missing bearer credentials, unknown routes)
    are raised by Starlette/FastAPI before reaching our routes. This handler
    ensures they match our error format.
    """
    status_code = exc.status_code
    # HTTPBearer rejects a missing Authorization header with 403
    if status_code == 403 and exc.detail == "Not authenticated":
        status_code = 401

    return JSONResponse(
        status_code=status_code,
        content={
            "error": str(exc.detail),
            "code": HTTP_STATUS_CODES.get(status_code, "INTERNAL_ERROR"),
        },
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Translate store errors that escaped the DAO layer.

    Args:
        request: The FastAPI request object
        exc: The SQLAlchemy error

    Returns:
        JSONResponse with the translated error
    """
    translated = translate_store_error(exc)
    logger.warning(
        f"Store error on {request.method} {request.url.path} mapped to {translated.code}",
        exc_info=translated.status_code >= 500,
    )
    return error_response(translated)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.

    WHY: Safety net for anything that slips through. The full traceback is
    logged; the response carries only a generic message.
    """
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        },
    )
