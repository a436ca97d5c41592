"""
Entry point for narration requests.

The router validates the request, answers from the cache when it can, and
otherwise runs the fallback chain once per cache key no matter how many
callers ask for the same line at the same time.
"""

import asyncio
import hashlib
import logging
from typing import Any, Dict, List, Optional

from ..core.voice_catalog import VoiceCatalog
from ..core.config_validator import KNOWN_PROVIDERS
from ..domain.errors import VoiceValidationError
from ..utils.logging import RequestContext, log_synthesis_event
from .fallback_chain import FallbackChain
from .models import VoiceRequest, VoiceResult
from .response_cache import ResponseCache

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "voice_"
KEY_FIELD_SEPARATOR = "\x00"


def compute_cache_key(text: str, character: str, emotion: str) -> str:
    """Content-derived key: identical (text, character, emotion) always maps to one entry.

    The fields are NUL-joined before hashing so ``("a_b", "c")`` and
    ``("a", "b_c")`` never share a key. Keys have a fixed length.
    """
    payload = KEY_FIELD_SEPARATOR.join((text, character, emotion))
    return CACHE_KEY_PREFIX + hashlib.sha256(payload.encode("utf-8")).hexdigest()


class VoiceRequestRouter:
    def __init__(
        self,
        cache: ResponseCache,
        chain: FallbackChain,
        catalog: Optional[VoiceCatalog] = None,
        cache_fallback_sentinel: bool = True,
    ):
        self._cache = cache
        self._chain = chain
        self._catalog = catalog
        self._cache_fallback_sentinel = cache_fallback_sentinel
        self._in_flight: Dict[str, "asyncio.Task[VoiceResult]"] = {}

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def handle(self, request: VoiceRequest) -> VoiceResult:
        missing = request.missing_fields()
        if missing:
            error = VoiceValidationError(missing)
            logger.info(f"Rejected voice request: {error}")
            return VoiceResult(
                success=False,
                error=str(error),
                error_kind=error.kind,
            )

        key = compute_cache_key(request.text, request.character, request.emotion)
        RequestContext.set(cache_key=key)

        cached = await self._cache_get(key)
        if cached is not None:
            log_synthesis_event("voice_cache_hit", character=request.character)
            return VoiceResult(audio_payload=cached, success=True, cached=True)

        task = self._in_flight.get(key)
        if task is None:
            task = self._start_synthesis(key, request)
        else:
            logger.debug(f"Joining in-flight synthesis for {key}")

        # Shielded so a disconnecting caller does not cancel work others await
        return await asyncio.shield(task)

    def _start_synthesis(self, key: str, request: VoiceRequest) -> "asyncio.Task[VoiceResult]":
        task = asyncio.create_task(self._synthesize_and_store(key, request), name=key)
        self._in_flight[key] = task

        def _on_done(t: "asyncio.Task[VoiceResult]") -> None:
            self._in_flight.pop(key, None)
            if t.cancelled():
                logger.info(f"Synthesis cancelled: {key}")
            elif t.exception() is not None:
                exc = t.exception()
                logger.error(
                    f"Synthesis failed: {key}",
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(_on_done)
        return task

    async def _synthesize_and_store(self, key: str, request: VoiceRequest) -> VoiceResult:
        result = await self._chain.synthesize(request)

        if result.success and (self._cache_fallback_sentinel or not result.is_sentinel):
            await self._cache_set(key, result.audio_payload)

        log_synthesis_event(
            "voice_generated",
            provider=result.provider,
            used_fallback=result.used_fallback,
            browser_synthesis=result.is_sentinel,
        )
        return result

    async def _cache_get(self, key: str) -> Optional[str]:
        try:
            return await self._cache.get(key)
        except Exception as e:
            logger.error(f"Cache read failed for {key}: {e}", exc_info=True)
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        try:
            await self._cache.set(key, value)
        except Exception as e:
            logger.error(f"Cache write failed for {key}: {e}", exc_info=True)

    async def shutdown(self, timeout: float = 5.0) -> int:
        """
        Wait briefly for in-flight syntheses, then cancel the rest.

        Returns:
            Number of tasks that had to be cancelled
        """
        tasks = list(self._in_flight.values())
        if not tasks:
            return 0
        logger.info(f"Waiting for {len(tasks)} in-flight syntheses...")
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    async def clear_cache(self) -> List[str]:
        """Delete every cached voice entry and return the removed keys."""
        deleted = await self._cache.delete_by_prefix(CACHE_KEY_PREFIX)
        logger.info(f"Voice cache cleared - {len(deleted)} entries removed")
        return deleted

    def describe(self) -> Dict[str, Any]:
        configured = {provider.name: provider.is_configured() for provider in self._chain.providers}
        services = {name: configured.get(name, False) for name in KNOWN_PROVIDERS}
        info: Dict[str, Any] = {
            "available": any(services.values()),
            "services": services,
        }
        if self._catalog is not None:
            info["characters"] = list(self._catalog.characters)
            info["emotions"] = list(self._catalog.emotions)
        return info
