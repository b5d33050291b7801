from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import settings
from .models import ErrorResponse


def get_storage_uri() -> str:
    return settings.REDIS_URL or settings.RATE_LIMIT_STORAGE_URI


# Limits on the auth routes are read from settings at import time;
# create_app() only toggles `enabled`.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=get_storage_uri(),
    headers_enabled=True,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the standard envelope, keeping slowapi's Retry-After/X-RateLimit headers."""
    body = ErrorResponse(
        message="Too many attempts. Try again later.",
        errors=[f"Rate limit exceeded: {exc.detail}"],
    )
    response = JSONResponse(status_code=429, content=body.model_dump())
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


__all__ = ["limiter", "rate_limit_exceeded_handler"]
