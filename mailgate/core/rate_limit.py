"""Rate limiting for the HTTP layer.

This module wires the rate limiting adapter into FastAPI.

Strategy:
- Global sliding-window limit per (client address, request path), enforced by
  ``rate_limit_middleware`` ahead of every route.
- Stricter per-route limits via ``route_rate_limit`` dependencies
  (e.g., the contact form).
- Limiters are built by the application factory and live on ``app.state``;
  there is no module-level limiter instance.

Rejected requests get ``429 {"error": "rate_limited"}``.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from mailgate.adapters.rate_limit.base import RateLimitResult
from mailgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from mailgate.core.config import AppSettings
from mailgate.core.errors import RateLimitedAppError
from mailgate.core.logging import hash_for_log

logger = logging.getLogger(__name__)

RATE_LIMITED_BODY = {"error": "rate_limited"}


def build_rate_limiter(app_settings: AppSettings) -> InMemorySlidingWindowRateLimiter:
    """Create the global limiter from settings."""

    return InMemorySlidingWindowRateLimiter(
        window_ms=app_settings.rate_limit_window_ms,
        max_requests=app_settings.rate_limit_max,
        record_rejected=app_settings.rate_limit_record_rejected,
        sweep_interval_ms=app_settings.rate_limit_sweep_interval_ms,
    )


def client_address(request: Request, *, trust_proxy: bool = False) -> str:
    """Resolve the caller's network address.

    Args:
        request: Incoming request.
        trust_proxy: Prefer the first X-Forwarded-For entry when present.

    Returns:
        Client address, or "unknown" when the transport has none.
    """

    if trust_proxy:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first

    return request.client.host if request.client else "unknown"


def build_rate_limit_key(request: Request, *, trust_proxy: bool = False) -> str:
    """Bucket key for a request: client address followed by the path."""

    return f"{client_address(request, trust_proxy=trust_proxy)}{request.url.path}"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Standard rate limit headers for a decision."""

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after_seconds or 0)
    return headers


def rate_limited_response(headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=RATE_LIMITED_BODY,
        headers=headers or None,
    )


def _log_decision(
    result: RateLimitResult,
    *,
    key: str,
    scope: str,
    window_ms: int,
) -> None:
    fields = {
        "scope": scope,
        "key_hash": hash_for_log(key),
        "limit": result.limit,
        "remaining": result.remaining,
        "window_ms": window_ms,
    }
    if result.allowed:
        logger.debug("rate_limit.allowed", extra=fields)
        return

    fields["retry_after_s"] = result.retry_after_seconds
    logger.warning("rate_limit.exceeded", extra=fields)


def check_request(
    request: Request,
    limiter: InMemorySlidingWindowRateLimiter,
    *,
    scope: str,
    trust_proxy: bool = False,
) -> RateLimitResult:
    """Run one admission decision for ``request`` against ``limiter``."""

    key = build_rate_limit_key(request, trust_proxy=trust_proxy)
    result = limiter.admit(key)
    _log_decision(result, key=key, scope=scope, window_ms=limiter.window_ms)
    return result


async def rate_limit_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """HTTP middleware enforcing the global per-client, per-path limit.

    Reads the limiter and its settings from ``request.app.state`` so every
    application instance owns an isolated limiter.

    Returns:
        The downstream response, or a 429 response when the caller is over
        the limit.
    """

    app_settings: AppSettings = request.app.state.settings.app
    limiter: InMemorySlidingWindowRateLimiter | None = request.app.state.rate_limiter

    if limiter is None or request.url.path in app_settings.exempt_paths:
        return await call_next(request)

    result = check_request(
        request,
        limiter,
        scope="global",
        trust_proxy=app_settings.trust_proxy,
    )
    headers = rate_limit_headers(result) if app_settings.rate_limit_include_headers else {}

    if not result.allowed:
        return rate_limited_response(headers)

    response = await call_next(request)
    for name, value in headers.items():
        response.headers.setdefault(name, value)
    return response


def route_rate_limit(state_attr: str) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a dependency enforcing a route-specific limiter.

    The limiter is looked up on ``app.state`` under ``state_attr`` at request
    time, so the dependency can be declared at import time while the limiter
    is created by the application factory.

    Admitted requests carry this limiter's ``X-RateLimit-*`` headers, which
    take precedence over the global limiter's.

    Usage:
        @router.post("/contact", dependencies=[Depends(route_rate_limit("contact_limiter"))])

    Raises:
        RateLimitedAppError: When the caller exceeded the route limit.
    """

    async def enforce_route_rate_limit(request: Request, response: Response) -> None:
        limiter: InMemorySlidingWindowRateLimiter | None = getattr(
            request.app.state, state_attr, None
        )
        if limiter is None:
            return

        app_settings: AppSettings = request.app.state.settings.app
        result = check_request(
            request,
            limiter,
            scope=state_attr,
            trust_proxy=app_settings.trust_proxy,
        )
        if result.allowed:
            # Route headers win over the global middleware's setdefault
            if app_settings.rate_limit_include_headers:
                response.headers.update(rate_limit_headers(result))
            return

        raise RateLimitedAppError(
            code="rate_limited",
            message="Rate limit exceeded. Try again later.",
            details={
                "limit": result.limit,
                "reset_at": result.reset_at,
                "retry_after": result.retry_after_seconds or 0,
            },
        )

    return enforce_route_rate_limit
