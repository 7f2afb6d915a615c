from __future__ import annotations

from mailgate.api.routes.contact import router as contact_router
from mailgate.api.routes.health import router as health_router

__all__ = ["contact_router", "health_router"]
