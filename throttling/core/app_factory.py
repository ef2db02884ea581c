from __future__ import annotations

"""Application factory for the throttle HTTP service.

Exposes named throttles over HTTP so processes that cannot import this
package (or do not share its Redis) can still ask the same gates.
"""

from fastapi import FastAPI

from throttling.api.routes import health_router, throttles_router
from throttling.core.config import settings
from throttling.core.exception_handlers import setup_exception_handlers
from throttling.core.logging import configure_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with exception handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Throttling",
        description=(
            "Named time-based and count-based throttles. State is kept in "
            "process memory or shared through Redis."
        ),
        version="0.1.0",
    )

    setup_exception_handlers(app)

    app.include_router(throttles_router, prefix="/v1")
    app.include_router(health_router)

    return app
