"""
Discord Profile Widget API - Main Application Entry Point.

Initializes and configures the FastAPI application that backs the embeddable
Discord profile widget. The rendering page calls `GET /api/user` to obtain a
normalized profile; the settings page uses `GET /api/widget/embed` to produce
the iframe snippet.

Key Responsibilities:
- Configure logging, the profile cache and the profile gateway at startup.
- Run a periodic sweep that drops expired cache entries.
- Install middleware for correlation ids, error handling and request timing.
- Mount the health/monitoring and widget routers.
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import init_profile_gateway
from api.endpoints import router
from api.health_router import (
    SERVICE_NAME,
    SERVICE_VERSION,
    health_router,
    monitoring_router,
)
from core.cache import MemoryCacheBackend, init_cache, run_periodic_sweep
from core.config import get_settings
from core.logging_config import get_logger, setup_logging
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger = get_logger("api.startup")
    settings = get_settings()

    cache = init_cache(
        MemoryCacheBackend(
            max_size=settings.profile_cache_max_entries,
            default_ttl=settings.profile_cache_ttl_seconds,
        )
    )
    logger.info(
        f"Profile cache initialized (ttl={settings.profile_cache_ttl_seconds}s, "
        f"max_entries={settings.profile_cache_max_entries})"
    )

    init_profile_gateway(cache)
    if not settings.discord_bot_token:
        logger.warning("DISCORD_BOT_TOKEN is not set; profile lookups will fail")
    logger.info("Profile gateway initialized")

    sweeper = asyncio.create_task(
        run_periodic_sweep(cache, settings.cache_sweep_interval_seconds)
    )

    yield

    # Cleanup on shutdown
    logger.info("Shutting down Profile Widget API")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info("Cleanup completed")


app = FastAPI(
    title=SERVICE_NAME,
    description="Normalized Discord profile data and embed codes for profile widgets",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# The rendering page is served from other origins; the API is read-only.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Correlation-ID"],
)

# Last added runs first: correlation id must exist before anything logs.
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(PerformanceMiddleware)
app.add_middleware(CorrelationMiddleware)

app.include_router(health_router)
app.include_router(monitoring_router)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8002,
        log_level="info",
    )
