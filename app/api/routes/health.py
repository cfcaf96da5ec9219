from __future__ import annotations

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Not rate limited and does not touch the counter store, so it stays green
    during a Redis outage.

    Returns:
        dict: ``status`` plus the configured counter store backend.
    """

    return {"status": "ok", "counter_store": settings.app.counter_store_backend}
