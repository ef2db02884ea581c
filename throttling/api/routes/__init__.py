from __future__ import annotations

from throttling.api.routes.health import router as health_router
from throttling.api.routes.throttles import router as throttles_router

__all__ = ["health_router", "throttles_router"]
