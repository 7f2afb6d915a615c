"""Global exception handlers for consistent error responses.

Design:
- RateLimitedAppError → 429 with the fixed ``{"error": "rate_limited"}`` body
- Other AppError subclasses → 400 with a structured error object
- Unexpected Exception → generic 500 (safety net)
- Structured responses include request_id for tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from mailgate.core.errors import AppError, RateLimitedAppError
from mailgate.core.logging import get_request_id
from mailgate.core.rate_limit import rate_limited_response

logger = logging.getLogger(__name__)


async def rate_limited_handler(request: Request, exc: RateLimitedAppError) -> JSONResponse:
    """Turn a route-level limiter rejection into the standard 429 response.

    Headers mirror the global middleware when the application enables them.
    """
    details = exc.details or {}
    app_settings = getattr(request.app.state, "settings", None)
    include_headers = app_settings is None or app_settings.app.rate_limit_include_headers

    headers: dict[str, str] = {}
    if include_headers and details:
        headers = {
            "Retry-After": str(details.get("retry_after", 0)),
            "X-RateLimit-Limit": str(details.get("limit", "")),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(details.get("reset_at", "")),
        }

    logger.info(
        "rate_limited_handled",
        extra={
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )
    return rate_limited_response(headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with status 400 and error details.
    """
    status_code = 400

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack traces or internals reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers by walking the exception's MRO, so the
    rate-limit handler wins over the generic AppError one.

    Example:
        >>> from fastapi import FastAPI
        >>> from mailgate.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(RateLimitedAppError)(rate_limited_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
