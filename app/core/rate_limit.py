"""
Rate limiting configuration for API endpoints.

Uses slowapi for request throttling based on client IP or user ID.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import RateLimitException, get_request_id


def get_rate_limit_key(request: Request) -> str:
    """
    Get rate limit key from request.

    Uses authenticated user ID if available, otherwise client IP.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["200/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


class RateLimits:
    """Rate limit presets for different endpoint types."""

    # Auth endpoints - strict limits to prevent brute force
    AUTH_LOGIN = "5/minute"
    AUTH_REFRESH = "10/minute"
    DRIVER_LOGIN = "10/minute"

    # Bulk data endpoints
    EXPORT = "20/minute"
    IMPORT = "10/minute"
    UPLOAD = "30/minute"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return the standard error body with retry information."""
    retry_after = 60
    request_id = get_request_id(request)
    body = RateLimitException(details={"limit": str(exc.detail), "retry_after": retry_after})
    return JSONResponse(
        status_code=429,
        content=body.to_response(request_id=request_id).model_dump(),
        headers={"Retry-After": str(retry_after), "X-Request-ID": request_id},
    )
