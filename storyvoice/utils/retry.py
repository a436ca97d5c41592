"""
Retry utilities for provider calls.

Wraps a single provider adapter call with a per-attempt timeout and
exponential backoff on transient failures. Fatal failures propagate at once;
exhausted retries surface as ProviderExhausted so the fallback chain moves
on instead of retrying the same provider again.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from ..domain.errors import (
    ProviderExhausted,
    ProviderFatalError,
    ProviderTransientError,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
        jitter_max: float = 0.5,
        timeout: Optional[float] = 30.0,
    ):
        """
        Initialize retry configuration.

        Args:
            max_retries: Additional attempts after the first one
            base_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            exponential_base: Base for exponential backoff (delay * base^attempt)
            jitter: Whether to add random jitter to delays
            jitter_max: Maximum jitter as fraction of delay (0.0 to 1.0)
            timeout: Per-attempt timeout in seconds, None for no limit
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_max = jitter_max
        self.timeout = timeout

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given attempt number.

        Args:
            attempt: The attempt number (0-indexed)

        Returns:
            Delay in seconds with optional jitter
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_amount = delay * random.uniform(0, self.jitter_max)
            delay += jitter_amount

        return delay

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        return cls(
            max_retries=settings.retry_max_retries,
            base_delay=settings.retry_base_delay_seconds,
            timeout=settings.provider_timeout_seconds or None,
        )


class RetryPolicy:
    """
    Run one provider adapter with bounded exponential backoff.

    Usage:
        policy = RetryPolicy(RetryConfig(max_retries=3, base_delay=1.0))
        audio = await policy.run(adapter, request)
    """

    def __init__(self, config: Optional[RetryConfig] = None, sleep: Sleep = asyncio.sleep):
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def _attempt(self, adapter, request) -> bytes:
        call = adapter.synthesize(request.text, request.character, request.emotion)
        if self.config.timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.config.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTransientError(
                adapter.name, f"no response within {self.config.timeout:.1f}s"
            ) from e

    async def run(self, adapter, request) -> bytes:
        """
        Call ``adapter.synthesize`` for the request, retrying transient errors.

        Raises:
            ProviderFatalError: on the first fatal failure, without delay
            ProviderExhausted: when every attempt failed transiently
        """
        last_exception: Optional[ProviderTransientError] = None

        for attempt in range(self.config.max_attempts):
            try:
                return await self._attempt(adapter, request)
            except ProviderFatalError:
                raise
            except ProviderTransientError as e:
                last_exception = e
                logger.warning(
                    f"{adapter.name} busy (attempt {attempt + 1}/{self.config.max_attempts}): {e}"
                )

                if attempt < self.config.max_retries:
                    delay = self.config.calculate_delay(attempt)
                    logger.info(f"Waiting {delay:.2f}s before retrying {adapter.name}")
                    await self._sleep(delay)

        logger.error(
            f"All {self.config.max_attempts} attempts failed for {adapter.name}, "
            "switching to fallback"
        )
        raise ProviderExhausted(adapter.name, self.config.max_attempts) from last_exception
