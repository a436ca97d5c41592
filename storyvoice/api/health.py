"""
Health endpoint for observability.

Returns uptime, version and cache backend status. Lightweight and requires
no authentication.
"""

import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Request

from ..version import __version__

logger = logging.getLogger(__name__)

# Start time for uptime calculation
_start_time: float = time.monotonic()


def set_start_time() -> None:
    """Reset the start time (called during app startup)."""
    global _start_time
    _start_time = time.monotonic()


def get_uptime_seconds() -> float:
    """Return seconds since the process started."""
    return time.monotonic() - _start_time


async def check_cache_health(request: Request) -> Dict[str, Any]:
    router = getattr(request.app.state, "voice_router", None)
    if router is None:
        return {"backend": "none", "healthy": False}
    cache = router.cache
    try:
        healthy = await cache.health_check()
    except Exception as e:
        logger.warning("Cache health check failed: %s", e)
        healthy = False
    return {"backend": cache.backend, "healthy": healthy}


def create_health_router() -> APIRouter:
    """Create and return the health check router."""
    router = APIRouter()

    @router.get("/health")
    async def health_endpoint(request: Request) -> Dict[str, Any]:
        cache = await check_cache_health(request)
        return {
            "status": "ok" if cache["healthy"] else "degraded",
            "service": "storyvoice",
            "version": __version__,
            "uptime_seconds": round(get_uptime_seconds(), 2),
            "cache": cache["backend"],
        }

    return router
