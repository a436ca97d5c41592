"""
Ordered provider fallback for narration synthesis.

Providers are tried strictly one after another, never in parallel, so a
single request is billed by at most one provider at a time. When every
provider fails, the chain answers with the BROWSER_SYNTHESIS sentinel and
the client performs local speech synthesis instead.
"""

import logging
from typing import List, Optional, Sequence

from ..domain.errors import (
    ErrorKind,
    ProviderExhausted,
    ProviderFatalError,
)
from ..utils.retry import RetryPolicy
from .models import BROWSER_SYNTHESIS, VoiceRequest, VoiceResult, encode_audio
from .providers import ProviderAdapter

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "API temporarily unavailable - using browser synthesis"


class FallbackChain:
    """Try each provider in order; never raise to the caller."""

    def __init__(
        self,
        providers: Sequence[ProviderAdapter],
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._providers = list(providers)
        self._retry = retry_policy or RetryPolicy()

    @property
    def providers(self) -> List[ProviderAdapter]:
        return list(self._providers)

    def ordered_for(self, preference: Optional[str]) -> List[ProviderAdapter]:
        """Provider order for a request, with the preferred provider moved first."""
        if not preference:
            return list(self._providers)
        preferred = [p for p in self._providers if p.name == preference]
        if not preferred:
            logger.warning(f"Unknown provider preference '{preference}', using default order")
            return list(self._providers)
        return preferred + [p for p in self._providers if p.name != preference]

    async def synthesize(self, request: VoiceRequest) -> VoiceResult:
        errors: List[str] = []

        for index, provider in enumerate(self.ordered_for(request.provider_preference)):
            try:
                audio = await self._retry.run(provider, request)
            except ProviderExhausted as e:
                errors.append(f"{provider.name}: {e}")
                logger.warning(f"{provider.name} exhausted, trying next provider")
                continue
            except ProviderFatalError as e:
                errors.append(f"{provider.name}: {e}")
                logger.warning(f"{provider.name} failed ({e.status}), trying next provider")
                continue
            except Exception as e:
                errors.append(f"{provider.name}: {e}")
                logger.error(
                    f"Unexpected error from {provider.name}: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                continue

            if index > 0:
                logger.info(f"Voice generated using fallback provider {provider.name}")
            return VoiceResult(
                audio_payload=encode_audio(audio),
                success=True,
                used_fallback=index > 0,
                provider=provider.name,
            )

        logger.error(f"All TTS providers failed, using browser synthesis. Errors: {'; '.join(errors)}")
        return VoiceResult(
            audio_payload=BROWSER_SYNTHESIS,
            success=True,
            used_fallback=True,
            error_kind=ErrorKind.PROVIDERS_UNAVAILABLE,
            error=UNAVAILABLE_MESSAGE,
        )
