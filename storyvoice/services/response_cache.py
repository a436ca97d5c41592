"""
Content-addressed cache for finished narration audio.

Two backends share one interface:
- InMemoryResponseCache: bounded LRU dict, lost on restart
- DatabaseResponseCache: SQLAlchemy table, survives restarts

Both enforce an explicit TTL (default 24 hours, 0 disables expiry). An
expired entry reads as a miss and is deleted on read.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from ..core.database import close_database, health_check, init_database, session_scope
from ..models.voice_cache import VoiceCacheEntry

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class ResponseCache(ABC):
    """Key-value store for synthesized audio payloads."""

    backend: str = ""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Clock = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _is_expired(self, created_at: float) -> bool:
        if not self.ttl_seconds:
            return False
        return self._clock() - created_at >= self.ttl_seconds

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on miss or expiry."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value. Re-writing the same key is harmless."""

    @abstractmethod
    async def delete_by_prefix(self, prefix: str) -> List[str]:
        """Delete every key starting with prefix and return the deleted keys."""

    @abstractmethod
    async def purge_expired(self) -> int:
        """Remove all expired entries, returning how many were removed."""

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Release backend resources."""


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryResponseCache(ResponseCache):
    """
    LRU cache with maximum size limit and TTL.

    When the cache exceeds max_size, the least recently used items are evicted.
    """

    backend = "memory"

    def __init__(
        self,
        max_size: int = 10000,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = time.time,
    ):
        super().__init__(ttl_seconds, clock)
        self._cache: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()
        self._max_size = max_size

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        created_at, value = entry
        if self._is_expired(created_at):
            del self._cache[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        self._cache.move_to_end(key)
        return value

    async def set(self, key: str, value: str) -> None:
        if key in self._cache:
            self._cache.move_to_end(key)
        self._cache[key] = (self._clock(), value)

        # Evict oldest items if over capacity
        while len(self._cache) > self._max_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Cache full, evicted {evicted}")

    async def delete_by_prefix(self, prefix: str) -> List[str]:
        deleted = [key for key in self._cache if key.startswith(prefix)]
        for key in deleted:
            del self._cache[key]
        return deleted

    async def purge_expired(self) -> int:
        expired = [
            key for key, (created_at, _) in self._cache.items() if self._is_expired(created_at)
        ]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache


# ---------------------------------------------------------------------------
# Database backend
# ---------------------------------------------------------------------------


class DatabaseResponseCache(ResponseCache):
    """Cache persisted in the ``voice_cache`` table."""

    backend = "database"

    def __init__(
        self,
        session_factory: async_sessionmaker,
        engine: Optional[AsyncEngine] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = time.time,
    ):
        super().__init__(ttl_seconds, clock)
        self._session_factory = session_factory
        self._engine = engine

    async def get(self, key: str) -> Optional[str]:
        async with session_scope(self._session_factory) as session:
            entry = await session.get(VoiceCacheEntry, key)
            if entry is None:
                return None
            if self._is_expired(entry.created_at):
                await session.delete(entry)
                await session.commit()
                logger.debug(f"Cache entry expired: {key}")
                return None
            return entry.value

    async def set(self, key: str, value: str) -> None:
        async with session_scope(self._session_factory) as session:
            await session.merge(
                VoiceCacheEntry(key=key, value=value, created_at=self._clock())
            )
            await session.commit()

    async def delete_by_prefix(self, prefix: str) -> List[str]:
        async with session_scope(self._session_factory) as session:
            # Filter in Python so "_" and "%" in prefixes are not LIKE wildcards
            result = await session.execute(select(VoiceCacheEntry.key))
            deleted = [key for key in result.scalars().all() if key.startswith(prefix)]
            if deleted:
                await session.execute(
                    delete(VoiceCacheEntry).where(VoiceCacheEntry.key.in_(deleted))
                )
                await session.commit()
            return deleted

    async def purge_expired(self) -> int:
        if not self.ttl_seconds:
            return 0
        cutoff = self._clock() - self.ttl_seconds
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                delete(VoiceCacheEntry).where(VoiceCacheEntry.created_at <= cutoff)
            )
            await session.commit()
            return result.rowcount or 0

    async def health_check(self) -> bool:
        return await health_check(self._session_factory)

    async def close(self) -> None:
        if self._engine is not None:
            await close_database(self._engine)


async def create_response_cache(settings) -> ResponseCache:
    """Build the cache backend selected by VOICE_CACHE_BACKEND."""
    backend = settings.voice_cache_backend.lower()
    if backend == InMemoryResponseCache.backend:
        return InMemoryResponseCache(
            max_size=settings.voice_cache_max_entries,
            ttl_seconds=settings.voice_cache_ttl_seconds,
        )
    if backend == DatabaseResponseCache.backend:
        engine, session_factory = await init_database(settings.database_url)
        return DatabaseResponseCache(
            session_factory,
            engine=engine,
            ttl_seconds=settings.voice_cache_ttl_seconds,
        )
    raise ValueError(f"Unknown voice cache backend '{settings.voice_cache_backend}'")
