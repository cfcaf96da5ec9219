"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import health_router, users_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware

TAGS_METADATA = [
    {
        "name": "Users",
        "description": "User CRUD. Every call counts against the shared fixed-window rate limit.",
    },
    {
        "name": "Health",
        "description": "Liveness check; never rate limited.",
    },
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Rate Limited Users API",
        description=(
            "User management API guarded by a fixed-window rate limiter. "
            "Window counters live in a counter store (in-process memory or Redis); "
            "exhausted windows answer 429 with Retry-After, store outages answer 503."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(users_router, prefix="/api/v1")
    app.include_router(health_router)

    return app
