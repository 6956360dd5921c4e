"""
Shared exception classes and error handling utilities for Patients Service API.

This module provides:
- Custom exception hierarchy for domain-specific errors
- Consistent error response formatting (the response envelope)
- Exception handlers for FastAPI integration

Usage:
    from core.exceptions import PatientNotFoundError, EmailAlreadyExistsError

    # In service layer - raise domain exceptions
    raise EmailAlreadyExistsError(email="juan@test.com")

    # In FastAPI - register handlers via setup_exception_handlers(app)
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.responses import error_response

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTION CLASSES
# =============================================================================

class PatientServiceError(Exception):
    """
    Base exception for all Patients Service domain errors.

    All custom exceptions should inherit from this class.
    Provides consistent error structure with status code and message.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "An unexpected error occurred"
    code: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        errors: Optional[List[str]] = None,
        **kwargs: Any
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message. Uses class default if not provided.
            status_code: HTTP status code. Uses class default if not provided.
            code: Opaque error code exposed to clients. Uses class default if not provided.
            errors: List of individual violations (validation errors only).
            **kwargs: Additional context, logged but never sent to clients.
        """
        self.message = message or self.__class__.message
        self.status_code = status_code or self.__class__.status_code
        self.code = code or self.__class__.code
        self.errors = errors
        self.context = kwargs
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the response envelope."""
        return error_response(self.message, errors=self.errors, code=self.code)


# =============================================================================
# INPUT EXCEPTIONS
# =============================================================================

class InvalidRequestError(PatientServiceError):
    """Raised when a path or query parameter is structurally invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class PatientValidationError(PatientServiceError):
    """Raised when a patient payload breaks one or more validation rules."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    def __init__(self, errors: List[str], **kwargs: Any):
        super().__init__(errors=list(errors), **kwargs)


# =============================================================================
# PATIENT EXCEPTIONS
# =============================================================================

class PatientNotFoundError(PatientServiceError):
    """Raised at the API boundary when a patient id has no matching record."""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Patient not found"

    def __init__(self, patient_id: Optional[int] = None, **kwargs: Any):
        super().__init__(patient_id=patient_id, **kwargs)


class EmailAlreadyExistsError(PatientServiceError):
    """Raised when another patient already uses the email (case-insensitive)."""

    status_code = status.HTTP_409_CONFLICT
    message = "Email already exists"
    code = "EMAIL_ALREADY_EXISTS"

    def __init__(self, email: Optional[str] = None, **kwargs: Any):
        super().__init__(email=email, **kwargs)


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================

class DatabaseError(PatientServiceError):
    """
    Raised when a database operation fails.

    The client only sees a generic message and the opaque ``code``; the
    original driver error is kept in ``context`` for the logs.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Database error"
    code = "DATABASE_ERROR"

    def __init__(self, operation: Optional[str] = None, **kwargs: Any):
        super().__init__(operation=operation, **kwargs)


class PoolExhaustedError(DatabaseError):
    """Raised when no pooled connection became free before the timeout."""

    code = "POOL_EXHAUSTED"


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def patient_service_exception_handler(
    request: Request,
    exc: PatientServiceError
) -> JSONResponse:
    """
    Handle PatientServiceError exceptions and return consistent JSON responses.

    Server-side failures are logged at ERROR, client errors at WARNING.
    """
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        f"{exc.__class__.__name__}: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "code": exc.code,
            "context": exc.context
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method, ...) as the envelope."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Route not found"
    elif isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=getattr(exc, "headers", None)
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI request parsing failures (e.g. malformed JSON) as a 400 envelope."""
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        message = "Request body must be valid JSON"
    else:
        message = "Invalid request"
    logger.warning(
        message,
        extra={"path": request.url.path, "method": request.method}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(message)
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions with a generic error response.

    Logs the full exception for debugging but returns a safe error message.
    """
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("Internal server error")
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Call this function during app initialization to enable consistent
    error handling across all endpoints.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PatientServiceError, patient_service_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
