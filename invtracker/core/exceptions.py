"""
Domain exceptions and global exception handlers for the FastAPI application.

Centralises error formatting so every error response follows a consistent
JSON structure::

    {
        "error": true,
        "kind": "<machine-readable error kind>",
        "message": "<human-readable description>"
    }

The service layer raises the domain exceptions defined here without importing
FastAPI's HTTPException, and the HTTP client decodes the same envelope back
into the same exception types.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────
# Domain exceptions
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all application-level errors."""

    kind = "Internal"

    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)

    @classmethod
    def from_response(
        cls, status_code: int, message: str, details: Any = None
    ) -> "AppException":
        """Build an instance from a decoded error response, bypassing ``__init__``."""
        exc = cls.__new__(cls)
        AppException.__init__(exc, status_code=status_code, message=message, details=details)
        return exc

    def to_body(self) -> Dict[str, Any]:
        """Render the JSON error envelope."""
        body: Dict[str, Any] = {"error": True, "kind": self.kind, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundException(AppException):
    """Resource not found (404)."""

    kind = "NotFound"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            status_code=404,
            message=f"{resource} with id '{identifier}' not found",
        )


class InvalidArgumentException(AppException):
    """Malformed or inconsistent request data (422)."""

    kind = "InvalidArgument"

    def __init__(self, message: str, details: Any = None):
        super().__init__(status_code=422, message=message, details=details)


class StoreUnavailableException(AppException):
    """The backing store (or the backend, seen from the client) is unreachable (503)."""

    kind = "StoreUnavailable"

    def __init__(self, message: str = "The data store is currently unavailable"):
        super().__init__(status_code=503, message=message)


class ValidationFailedException(AppException):
    """
    Client-side form validation rejected a candidate record.

    ``errors`` maps each offending field to its message.  This exception is
    raised before any network call and is never rendered by the API.
    """

    kind = "ValidationFailed"

    def __init__(self, errors: Mapping[str, str]):
        self.errors = dict(errors)
        super().__init__(
            status_code=422,
            message=f"Validation failed for: {', '.join(self.errors)}",
            details=self.errors,
        )


_KINDS: Dict[str, Type[AppException]] = {
    NotFoundException.kind: NotFoundException,
    InvalidArgumentException.kind: InvalidArgumentException,
    StoreUnavailableException.kind: StoreUnavailableException,
}


def exception_from_body(status_code: int, body: Any) -> AppException:
    """
    Rebuild a domain exception from an error response envelope.

    Unknown kinds (or bodies that are not an error envelope at all) become a
    plain :class:`AppException` carrying the original status code.
    """
    if not isinstance(body, dict):
        return AppException(status_code=status_code, message=str(body))

    kind: Optional[str] = body.get("kind")
    message = str(body.get("message", f"HTTP {status_code}"))
    details = body.get("details")

    exc_cls = _KINDS.get(kind or "", AppException)
    return exc_cls.from_response(status_code, message, details)


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        """Handle domain-specific exceptions raised by the service layer."""
        if exc.status_code >= 500:
            logger.error(
                "%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle standard HTTP exceptions (e.g. 404 from path-not-found)."""
        kind = "NotFound" if exc.status_code == 404 else "InvalidArgument"
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": True, "kind": kind, "message": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle Pydantic / FastAPI request-validation errors.

        Returns a 422 ``InvalidArgument`` with one entry per failing field.
        """
        errors = []
        for err in exc.errors():
            loc = " -> ".join(str(part) for part in err["loc"])
            errors.append({"field": loc, "message": err["msg"]})
        return JSONResponse(
            status_code=422,
            content={
                "error": True,
                "kind": InvalidArgumentException.kind,
                "message": "Validation failed",
                "details": errors,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected exceptions."""
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "kind": AppException.kind,
                "message": "Internal Server Error. Please contact support.",
            },
        )
