"""Global exception handlers for the API."""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.shared.config import get_settings
from src.shared.exceptions import (
    ExperienceUpdateError,
    ExternalServiceError,
    InvalidStateError,
    InvalidTransitionError,
    PracticeError,
    ResourceNotFoundError,
    SessionAlreadyActiveError,
    SessionSubmissionError,
    ValidationError as DomainValidationError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base API exception with structured error response."""

    def __init__(
        self,
        message: str,
        error_code: str = "API_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class BadRequestError(APIError):
    """Bad request error."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="BAD_REQUEST",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


def create_error_response(
    request_id: str,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create standardized error response.

    Args:
        request_id: Unique request identifier
        error_code: Error code string
        message: Human-readable error message
        details: Optional additional details

    Returns:
        Structured error response dict
    """
    return {
        "success": False,
        "error": {
            "code": error_code,
            "message": message,
            "details": details or {},
        },
        "request_id": request_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def map_practice_error(exc: PracticeError) -> tuple[int, str]:
    """Map a domain exception to (HTTP status, error code).

    - ResourceNotFoundError -> 404 Not Found
    - SessionAlreadyActiveError -> 409 SESSION_ALREADY_ACTIVE
    - InvalidTransitionError -> 409 INVALID_TRANSITION
    - InvalidStateError -> 409 Conflict
    - ValidationError -> 400 Bad Request
    - ExperienceUpdateError -> 502 EXPERIENCE_NOT_APPLIED (record was saved)
    - SessionSubmissionError -> 502 SUBMISSION_FAILED (nothing was saved)
    - ExternalServiceError -> 503 Service Unavailable
    """
    if isinstance(exc, ResourceNotFoundError):
        return status.HTTP_404_NOT_FOUND, "NOT_FOUND"
    if isinstance(exc, SessionAlreadyActiveError):
        return status.HTTP_409_CONFLICT, "SESSION_ALREADY_ACTIVE"
    if isinstance(exc, InvalidTransitionError):
        return status.HTTP_409_CONFLICT, "INVALID_TRANSITION"
    if isinstance(exc, InvalidStateError):
        return status.HTTP_409_CONFLICT, "CONFLICT"
    if isinstance(exc, DomainValidationError):
        return status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR"
    if isinstance(exc, ExperienceUpdateError):
        return status.HTTP_502_BAD_GATEWAY, "EXPERIENCE_NOT_APPLIED"
    if isinstance(exc, SessionSubmissionError):
        return status.HTTP_502_BAD_GATEWAY, "SUBMISSION_FAILED"
    if isinstance(exc, ExternalServiceError):
        return status.HTTP_503_SERVICE_UNAVAILABLE, "SERVICE_UNAVAILABLE"
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "DOMAIN_ERROR"


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers for the application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        """Handle custom API errors."""
        request_id = getattr(request.state, "request_id", str(uuid4()))

        logger.warning(
            f"API Error: {exc.error_code} - {exc.message}",
            extra={
                "request_id": request_id,
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "path": request.url.path,
            },
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(
                request_id=request_id,
                error_code=exc.error_code,
                message=exc.message,
                details=exc.details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        request_id = getattr(request.state, "request_id", str(uuid4()))

        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            errors.append({
                "field": loc,
                "message": error["msg"],
                "type": error["type"],
            })

        logger.warning(
            f"Validation Error: {len(errors)} errors",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "errors": errors,
            },
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=create_error_response(
                request_id=request_id,
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                details={"errors": errors},
            ),
        )

    @app.exception_handler(PracticeError)
    async def practice_error_handler(
        request: Request, exc: PracticeError
    ) -> JSONResponse:
        """Handle domain exceptions with proper HTTP status mapping."""
        request_id = getattr(request.state, "request_id", str(uuid4()))
        status_code, error_code = map_practice_error(exc)

        logger.warning(
            f"Domain Exception: {exc.__class__.__name__} - {exc.message}",
            extra={
                "request_id": request_id,
                "error_type": exc.__class__.__name__,
                "status_code": status_code,
                "path": request.url.path,
            },
        )

        return JSONResponse(
            status_code=status_code,
            content=create_error_response(
                request_id=request_id,
                error_code=error_code,
                message=exc.message,
                details=exc.details,
            ),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        request_id = getattr(request.state, "request_id", str(uuid4()))

        if settings.is_development:
            logger.error(
                f"Unhandled Exception: {type(exc).__name__}: {str(exc)}",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "traceback": traceback.format_exc(),
                },
            )
        else:
            logger.error(
                f"Unhandled Exception: {type(exc).__name__}",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                },
            )

        # Don't expose internal errors in production
        message = str(exc) if settings.is_development else "Internal server error"

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(
                request_id=request_id,
                error_code="INTERNAL_ERROR",
                message=message,
            ),
        )
