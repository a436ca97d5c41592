"""
Periodic removal of expired voice cache entries.

Expired entries already read as misses; this keeps the backing store from
growing with audio nobody will ask for again.
"""

import asyncio
import logging

from ..services.response_cache import ResponseCache

logger = logging.getLogger(__name__)

DEFAULT_PURGE_INTERVAL_SECONDS = 3600


async def purge_expired_entries(cache: ResponseCache) -> int:
    """Run one purge pass and return the number of removed entries."""
    removed = await cache.purge_expired()
    if removed:
        logger.info(f"Purged {removed} expired voice cache entries")
    return removed


async def run_periodic_cache_purge(
    cache: ResponseCache,
    interval_seconds: float = DEFAULT_PURGE_INTERVAL_SECONDS,
):
    """
    Run periodic cache purging as a background task.

    Args:
        cache: Cache to purge
        interval_seconds: How often to run the purge
    """
    logger.info(f"Starting periodic cache purge: every {interval_seconds}s")

    while True:
        try:
            await asyncio.sleep(interval_seconds)
            await purge_expired_entries(cache)
        except asyncio.CancelledError:
            logger.info("Periodic cache purge task cancelled")
            break
        except Exception as e:
            logger.error(f"Error in periodic cache purge: {e}", exc_info=True)
