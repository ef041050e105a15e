"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
and validation errors into JSON responses with appropriate status codes.

Every error body has the same shape: {"error": "<message>"}, plus "details" where
there is something useful to add (import failures, request validation).
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from listenstats.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    ExternalServiceError,
    ImportFailedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first, checked with isinstance()
_STATUS_BY_EXCEPTION: tuple[tuple[type[DomainException], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (DuplicateEntityException, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ImportFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def error_body(message: str, details: Any = None) -> dict[str, Any]:
    """Build the JSON error payload."""
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def status_for(exc: DomainException) -> int:
    """HTTP status for a domain exception (500 for anything unmapped)."""
    for exc_type, status_code in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Hey future me - pydantic's exc.errors() can contain the raw body as bytes in "input",
# which JSONResponse cannot serialize. Only loc/msg/type go back to the client.
def _summarize_validation_errors(errors: list[Any]) -> list[dict[str, Any]]:
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": str(error.get("msg", "")),
            "type": str(error.get("type", "")),
        }
        for error in errors
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions, request validation and HTTP errors.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        status_code = status_for(exc)
        details = getattr(exc, "details", None)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "%s at %s: %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "status_code": status_code,
                "error": exc.message,
                "details": details,
            },
        )
        return JSONResponse(
            status_code=status_code,
            content=error_body(exc.message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed request bodies/params are client errors (400)."""
        errors = _summarize_validation_errors(list(exc.errors()))
        logger.warning(
            "Request validation error at %s",
            request.url.path,
            extra={"path": request.url.path, "errors": errors},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Invalid request", errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "HTTP %s at %s: %s",
                exc.status_code,
                request.url.path,
                exc.detail,
                extra={"path": request.url.path, "status_code": exc.status_code},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "Unhandled error at %s",
            request.url.path,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error"),
        )
