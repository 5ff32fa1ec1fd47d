"""VoxArena API error handling.

Provides VoxArenaHttpError, the mapping from domain errors to HTTP errors,
and the FastAPI exception handlers that render the error envelope.

Global exception handlers:
- VoxArenaHttpError: Application errors with structured envelope
- HTTPException: FastAPI/Starlette HTTP exceptions
- RequestValidationError: Pydantic validation errors
- Exception: Catch-all for unhandled exceptions (no stack traces leaked)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from voxarena.api.error_model import get_error_code_for_status, make_error_response
from voxarena.debate.errors import (
    CompositionViolationError,
    DebateNotFoundError,
    IllegalTransitionError,
    MalformedInputError,
)
from voxarena.services.personas.service import (
    PersonaInUseError,
    PersonaNotFoundError,
    PersonaValidationError,
)
from voxarena.services.taxonomy.service import (
    TaxonomyConflictError,
    TaxonomyNotFoundError,
    TaxonomyValidationError,
)

logger = logging.getLogger(__name__)


class VoxArenaHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 400, 404).
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional dict with additional error context.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


# Domain error type -> (HTTP status, envelope code). First match wins.
_DOMAIN_ERRORS: tuple[tuple[type[Exception], int, str], ...] = (
    (DebateNotFoundError, 404, "NOT_FOUND"),
    (PersonaNotFoundError, 404, "NOT_FOUND"),
    (TaxonomyNotFoundError, 404, "NOT_FOUND"),
    (CompositionViolationError, 400, "COMPOSITION_VIOLATION"),
    (IllegalTransitionError, 400, "ILLEGAL_TRANSITION"),
    (MalformedInputError, 400, "INVALID_REQUEST"),
    (PersonaValidationError, 400, "INVALID_REQUEST"),
    (TaxonomyValidationError, 400, "INVALID_REQUEST"),
    (PersonaInUseError, 409, "CONFLICT"),
    (TaxonomyConflictError, 409, "CONFLICT"),
)


def to_http_error(exc: Exception) -> VoxArenaHttpError:
    """Map a domain error to a VoxArenaHttpError.

    The domain message is passed through verbatim.

    Raises:
        TypeError: If ``exc`` is not a known domain error.
    """
    message = getattr(exc, "message", str(exc))
    for error_type, status_code, code in _DOMAIN_ERRORS:
        if isinstance(exc, error_type):
            details: dict[str, Any] | None = None
            if isinstance(exc, CompositionViolationError):
                details = {"format": exc.debate_format}
            elif isinstance(exc, IllegalTransitionError):
                details = {"from": exc.from_status, "to": exc.to_status}
            return VoxArenaHttpError(status_code, code, message, details)
    raise TypeError(f"Unmapped domain error: {type(exc).__name__}")


async def voxarena_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for VoxArenaHttpError."""
    assert isinstance(exc, VoxArenaHttpError)

    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for HTTPException."""
    assert isinstance(exc, HTTPException)

    code = get_error_code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError.

    Reports field paths and messages only, never raw input values.
    """
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: 500 with a generic message, exception logged."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
        details=None,
    )
