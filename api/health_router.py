"""
Health and Monitoring Router.

Public, unauthenticated endpoints for uptime checks and cache observability.

Endpoints Provided:
- `/healthcheck`: lightweight liveness check.
- `/monitoring/ping`: connectivity test.
- `/monitoring/detailed`: component status, currently the profile cache.
- `/monitoring/cache/stats`: hit/miss counters and occupancy of the cache.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from core.cache import get_cache
from core.logging_config import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "Discord Profile Widget API"
SERVICE_VERSION = "1.0.0"

health_router = APIRouter(tags=["Health & Monitoring"])

monitoring_router = APIRouter(prefix="/monitoring", tags=["Health & Monitoring"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_router.get("/healthcheck")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint"""
    logger.debug("Health check requested")

    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": SERVICE_VERSION,
        "service": SERVICE_NAME,
    }


@monitoring_router.get("/ping")
async def ping() -> Dict[str, str]:
    """Simple ping endpoint for connectivity testing"""
    return {"message": "pong", "timestamp": _now(), "version": SERVICE_VERSION}


@monitoring_router.get("/detailed")
async def detailed_health_check() -> Dict[str, Any]:
    """Health check with per-component status"""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": _now(),
        "version": SERVICE_VERSION,
        "service": SERVICE_NAME,
        "components": {},
    }

    cache_health = await get_cache().health_check()
    health_status["components"]["cache"] = cache_health
    if cache_health.get("status") != "healthy":
        health_status["status"] = "degraded"

    return health_status


@monitoring_router.get("/cache/stats")
async def get_cache_stats() -> Dict[str, Any]:
    """Get cache statistics"""
    logger.info("Cache stats requested")
    stats = await get_cache().stats()
    return {"cache_stats": stats, "timestamp": _now()}
