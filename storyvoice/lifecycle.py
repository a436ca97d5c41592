"""
Application lifespan management.

Handles startup and shutdown of all subsystems:
- Configuration validation
- Voice catalog loading
- Shared HTTP session for provider calls
- Response cache backend
- Provider chain and request router
- Periodic cache purge

Anything already present on ``app.state`` (for example a router built with
fake providers in tests) is used as-is and not rebuilt.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import aiohttp
from fastapi import FastAPI

from .api.health import set_start_time
from .core.config import Settings, get_settings
from .core.config_validator import log_config_summary, validate_config
from .core.voice_catalog import VoiceCatalog
from .domain.errors import ConfigurationError
from .services.fallback_chain import FallbackChain
from .services.providers import create_provider
from .services.response_cache import ResponseCache, create_response_cache
from .services.voice_router import VoiceRequestRouter
from .utils.cleanup import run_periodic_cache_purge
from .utils.retry import RetryConfig, RetryPolicy

logger = logging.getLogger(__name__)


def build_voice_router(
    settings: Settings,
    catalog: VoiceCatalog,
    cache: ResponseCache,
    http_session: Optional[aiohttp.ClientSession] = None,
) -> VoiceRequestRouter:
    """Wire providers, retry policy, fallback chain and cache into a router."""
    providers = [
        create_provider(name, settings, catalog, session=http_session)
        for name in settings.provider_names
    ]
    chain = FallbackChain(providers, RetryPolicy(RetryConfig.from_settings(settings)))
    return VoiceRequestRouter(
        cache,
        chain,
        catalog=catalog,
        cache_fallback_sentinel=settings.voice_cache_fallback_sentinel,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("StoryVoice starting up...")
    set_start_time()

    if getattr(app.state, "voice_router", None) is not None:
        logger.info("Using pre-configured voice router")
        yield
        return

    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    config_errors = validate_config(settings)
    if config_errors:
        for err in config_errors:
            logger.error(f"Config validation error: {err}")
        logger.critical(
            "Aborting startup due to %d configuration error(s)", len(config_errors)
        )
        raise ConfigurationError(config_errors)
    log_config_summary(settings)

    catalog = VoiceCatalog.from_settings(settings)
    cache = await create_response_cache(settings)
    http_session = aiohttp.ClientSession()

    app.state.settings = settings
    app.state.voice_router = build_voice_router(settings, catalog, cache, http_session)
    logger.info(f"Voice router ready: providers={settings.provider_names}, cache={cache.backend}")

    purge_task: Optional[asyncio.Task] = None
    if settings.voice_cache_ttl_seconds and settings.voice_cache_purge_interval_seconds:
        purge_task = asyncio.create_task(
            run_periodic_cache_purge(cache, settings.voice_cache_purge_interval_seconds)
        )

    try:
        yield
    finally:
        logger.info("StoryVoice shutting down...")
        if purge_task is not None:
            purge_task.cancel()
            await asyncio.gather(purge_task, return_exceptions=True)
        cancelled = await app.state.voice_router.shutdown()
        if cancelled:
            logger.warning(f"Cancelled {cancelled} unfinished syntheses")
        await http_session.close()
        await cache.close()
        app.state.voice_router = None
        logger.info("Shutdown complete")
