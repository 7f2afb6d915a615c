from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (settings, limiters, middleware, handlers,
routers) so tests can build isolated instances, each owning its own rate
limiter state.
"""

from fastapi import FastAPI

from mailgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from mailgate.api.routes import contact_router, health_router
from mailgate.core.config import Settings, settings as default_settings
from mailgate.core.exception_handlers import setup_exception_handlers
from mailgate.core.logging import configure_logging
from mailgate.core.middleware import request_id_middleware
from mailgate.core.openapi import apply_openapi_customizations
from mailgate.core.rate_limit import build_rate_limiter, rate_limit_middleware


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build the app from; defaults to the
            environment-loaded global settings.

    Returns:
        Configured FastAPI app with limiters, middleware, handlers and routers.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Mailgate API",
        description=(
            "Backend API for the virtual mailbox service. Every route is "
            "throttled per client address and path with a sliding window; "
            'callers over the limit receive 429 {"error": "rate_limited"}.'
        ),
        version="0.1.0",
        debug=cfg.app.debug,
    )

    app.state.settings = cfg
    app.state.rate_limiter = build_rate_limiter(cfg.app) if cfg.app.rate_limit_enabled else None
    app.state.contact_limiter = InMemorySlidingWindowRateLimiter(
        window_ms=cfg.app.contact_rate_limit_window_ms,
        max_requests=cfg.app.contact_rate_limit_max,
        record_rejected=cfg.app.rate_limit_record_rejected,
        sweep_interval_ms=cfg.app.rate_limit_sweep_interval_ms,
    )

    # Middleware: the last registered runs first, so request ids wrap the limiter
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router, prefix="/api")
    app.include_router(contact_router, prefix="/api")

    apply_openapi_customizations(app, exempt_paths=cfg.app.exempt_paths)

    return app
