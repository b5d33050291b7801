import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..exceptions import AppError, AuthError
from ..logging_utils import log_event
from ..models import ErrorResponse
from ..rate_limit import rate_limit_exceeded_handler

logger = logging.getLogger(__name__)

_HTTP_MESSAGES = {
    404: "Route not found",
    405: "Method not allowed",
}

# Request parts that carry no meaning for the client in an error location
_LOC_NOISE = {"body", "query", "path"}


def _envelope(status_code: int, message: str, errors: list[str], headers=None) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def format_validation_errors(errors) -> list[str]:
    """Flatten Pydantic error dicts into "field: message" strings."""
    out = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in _LOC_NOISE]
        msg = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        out.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return out


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers that render every failure in the standard envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        if exc.status_code >= 500:
            logger.error("app_error path=%s", request.url.path, exc_info=exc)
        return _envelope(exc.status_code, exc.message, exc.errors, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = format_validation_errors(exc.errors())
        log_event(
            logger,
            "request_invalid",
            level=logging.INFO,
            path=request.url.path,
            errors=len(errors),
        )
        return _envelope(400, "Invalid input data", errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        if exc.status_code in _HTTP_MESSAGES and message in ("Not Found", "Method Not Allowed"):
            message = _HTTP_MESSAGES[exc.status_code]
        errors = [f"{request.method} {request.url.path}: {message}"]
        return _envelope(exc.status_code, message, errors, getattr(exc, "headers", None))

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # full detail goes to the log, never to the client
        logger.error(
            "unhandled_error method=%s path=%s", request.method, request.url.path, exc_info=exc
        )
        return _envelope(500, "Internal server error", ["Unexpected error"])
