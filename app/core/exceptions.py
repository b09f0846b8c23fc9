"""
Standardized exception handling.

Every error leaves the API in the same shape:

    {"error": "<message>", "code": "<ERROR_CODE>", "status_code": 400, ...}

where ``error`` is always a human readable (Polish) message.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    error: str
    code: str
    status_code: int
    timestamp: str
    request_id: Optional[str] = None
    details: Optional[Any] = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# Base Exception Classes
# =============================================================================

class AppException(Exception):
    """Base exception for all application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "Wystapil nieoczekiwany blad"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message or self.message
        self.details = details
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert exception to standardized error response."""
        return ErrorResponse(
            error=self.message,
            code=self.error_code,
            status_code=self.status_code,
            timestamp=_timestamp(),
            request_id=request_id,
            details=self.details,
        )


# =============================================================================
# Client Errors (4xx)
# =============================================================================

class ValidationException(AppException):
    """Invalid input data."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    message = "Nieprawidlowe dane"


class AuthenticationException(AppException):
    """Authentication failed."""
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTHENTICATION_FAILED"
    message = "Nieautoryzowany"


class AuthorizationException(AppException):
    """User lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"
    message = "Brak uprawnien"


class NotFoundException(AppException):
    """Resource not found."""
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Nie znaleziono zasobu"


class ConflictException(AppException):
    """Resource conflict (duplicate, state conflict)."""
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    message = "Konflikt danych"


class RateLimitException(AppException):
    """Rate limit exceeded."""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMIT_EXCEEDED"
    message = "Przekroczono limit zapytan. Sprobuj ponownie pozniej."


# =============================================================================
# Domain-Specific Exceptions
# =============================================================================

class MissingTenantException(AuthorizationException):
    """Authenticated user has no tenant."""
    error_code = "TENANT_REQUIRED"
    message = "Brak przypisanego tenanta"


class DuplicateEntityException(ConflictException):
    """Unique business key already used within the tenant."""
    error_code = "DUPLICATE_ENTITY"

    def __init__(self, message: str, field: str, value: Any):
        super().__init__(message=message, details={"field": field, "value": str(value)})


class EntityInUseException(ConflictException):
    """Entity still referenced by active orders or documents."""
    error_code = "ENTITY_IN_USE"

    def __init__(self, message: str, active_count: int):
        super().__init__(message=message, details={"active_count": active_count})


class InvalidReferenceException(ValidationException):
    """Referenced entity does not exist in the tenant."""
    error_code = "INVALID_REFERENCE"

    def __init__(self, message: str, field: str, value: Any):
        super().__init__(message=message, details={"field": field, "value": str(value)})


class InvalidStatusTransitionException(ValidationException):
    """Order status change not allowed by the status flow."""
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, target: str, allowed: list[str]):
        super().__init__(
            message=f"Niedozwolona zmiana statusu z {current} na {target}",
            details={"current": current, "target": target, "allowed": allowed},
        )


class RevenueShareExceededException(ValidationException):
    """Sum of open assignment shares would exceed 100%."""
    error_code = "REVENUE_SHARE_EXCEEDED"

    def __init__(self, current_total: float, requested: float):
        available = max(0.0, 1 - current_total)
        super().__init__(
            message=(
                f"Suma udzialow przekracza 100%. Aktualnie przypisane: {round(current_total * 100)}%, "
                f"probowano dodac: {round(requested * 100)}%"
            ),
            details={"current_total": current_total, "requested": requested, "available": round(available, 4)},
        )


class InvoiceLockedException(ValidationException):
    """Issued invoices can only change status."""
    error_code = "INVOICE_LOCKED"
    message = "Mozna edytowac tylko faktury w statusie Szkic"


# =============================================================================
# External Service Exceptions (5xx)
# =============================================================================

class ExternalServiceException(AppException):
    """External service error."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "Usluga zewnetrzna niedostepna"


class ConfigurationException(AppException):
    """Configuration error - should fail at startup."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "CONFIGURATION_ERROR"
    message = "Blad konfiguracji aplikacji"


# =============================================================================
# Exception Handler Registration
# =============================================================================

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_FAILED",
    403: "PERMISSION_DENIED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


def get_request_id(request: Request) -> str:
    """Extract or generate request ID."""
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("X-Request-ID")
        or str(uuid4())
    )


def _json_error(request_id: str, response: ErrorResponse, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(),
        headers={"X-Request-ID": request_id, **(headers or {})},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all application exceptions with standardized format."""
    request_id = get_request_id(request)
    return _json_error(request_id, exc.to_response(request_id=request_id))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Map framework HTTP errors (404 routes, 405) onto the error shape."""
    request_id = get_request_id(request)
    message = exc.detail if isinstance(exc.detail, str) else "Blad zapytania"
    response = ErrorResponse(
        error=message,
        code=_HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        status_code=exc.status_code,
        timestamp=_timestamp(),
        request_id=request_id,
    )
    return _json_error(request_id, response, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic validation errors become 400 with per-field details."""
    request_id = get_request_id(request)
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    response = ErrorResponse(
        error=ValidationException.message,
        code=ValidationException.error_code,
        status_code=status.HTTP_400_BAD_REQUEST,
        timestamp=_timestamp(),
        request_id=request_id,
        details=details,
    )
    return _json_error(request_id, response)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id(request)
    logger.exception(f"Unhandled exception: {exc}", extra={"request_id": request_id})

    response = ErrorResponse(
        error=AppException.message,
        code=AppException.error_code,
        status_code=500,
        timestamp=_timestamp(),
        request_id=request_id,
    )
    return _json_error(request_id, response)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
