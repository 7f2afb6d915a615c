"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a request ID for log correlation:
- Accepts the incoming request id header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Echoes request_id and the total duration in response headers
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from mailgate.core.logging import clear_request_id, set_request_id


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """HTTP middleware for request ID generation and propagation.

    The header name comes from ``LogSettings.request_id_header`` of the
    application's settings (``X-Request-ID`` by default). Registered last so
    it wraps the rate limiter and 429 responses are correlated as well.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with ``X-Request-ID`` and
            ``X-Request-Duration-ms`` headers added.
    """

    header_name = request.app.state.settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
