"""
TTS provider adapters.

ElevenLabs is the primary narration provider and OpenAI TTS the secondary.
Each adapter turns (text, character, emotion) into one outbound call and
either returns raw audio bytes or raises a classified ProviderError.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ..core.voice_catalog import VoiceCatalog
from ..domain.errors import (
    ProviderError,
    ProviderFatalError,
    ProviderTransientError,
)

logger = logging.getLogger(__name__)

# Status codes that mean "slow down / try again later"
TRANSIENT_STATUSES = frozenset({429, 503})

# Body markers some providers use for overload instead of a 429
BUSY_MARKERS = ("system_busy", "Too Many Requests")

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Trim and collapse runs of whitespace."""
    return _WHITESPACE.sub(" ", text.strip())


def classify_response(provider: str, status: int, body: str) -> ProviderError:
    """Map a non-2xx provider response to a transient or fatal error."""
    if status in TRANSIENT_STATUSES or any(marker in body for marker in BUSY_MARKERS):
        return ProviderTransientError(provider, body, status=status)
    return ProviderFatalError(provider, body, status=status)


# ---------------------------------------------------------------------------
# Base adapter
# ---------------------------------------------------------------------------


class ProviderAdapter(ABC):
    """Base class for TTS provider adapters.

    Subclasses build the provider-specific URL, headers and payload; the
    base class performs the HTTP call and error classification.
    """

    name: str = ""

    def __init__(
        self,
        catalog: VoiceCatalog,
        api_key: Optional[str] = None,
        base_url: str = "",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.catalog = catalog
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._session = session

    def is_configured(self) -> bool:
        """True when credentials are present."""
        return bool(self.api_key)

    @abstractmethod
    def build_request(
        self, text: str, character: str, emotion: str
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, json_payload) for one synthesis call."""

    async def synthesize(self, text: str, character: str, emotion: str) -> bytes:
        """Synthesize text and return raw audio bytes.

        Raises:
            ProviderTransientError: rate limited, overloaded or unreachable
            ProviderFatalError: anything else, including missing credentials
        """
        if not self.is_configured():
            raise ProviderFatalError(self.name, f"{self.name} API key not configured")

        url, headers, payload = self.build_request(normalize_text(text), character, emotion)
        logger.info(
            f"Generating voice with {self.name}: character={character}, "
            f"emotion={emotion}, text_length={len(text)}"
        )

        audio = await self._post(url, headers, payload)

        logger.info(f"{self.name} voice generated: {round(len(audio) / 1024)}KB")
        return audio

    async def _post(
        self, url: str, headers: Dict[str, str], payload: Dict[str, Any]
    ) -> bytes:
        try:
            if self._session is not None:
                return await self._send(self._session, url, headers, payload)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, url, headers, payload)
        except aiohttp.ClientError as e:
            raise ProviderTransientError(self.name, f"{type(e).__name__}: {e}") from e
        except asyncio.TimeoutError as e:
            raise ProviderTransientError(self.name, "request timed out") from e

    async def _send(
        self,
        session: aiohttp.ClientSession,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
    ) -> bytes:
        async with session.post(url, json=payload, headers=headers) as resp:
            if 200 <= resp.status < 300:
                return await resp.read()
            error_text = await resp.text()

        logger.error(f"{self.name} API error: status={resp.status}, body={error_text[:200]}")
        raise classify_response(self.name, resp.status, error_text)


# ---------------------------------------------------------------------------
# ElevenLabs (primary)
# ---------------------------------------------------------------------------


class ElevenLabsProvider(ProviderAdapter):
    """ElevenLabs text-to-speech with per-emotion voice settings."""

    name = "elevenlabs"

    def __init__(
        self,
        catalog: VoiceCatalog,
        api_key: Optional[str] = None,
        base_url: str = "https://api.elevenlabs.io",
        model_id: str = "eleven_multilingual_v2",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(catalog, api_key, base_url, session)
        self.model_id = model_id

    def build_request(self, text: str, character: str, emotion: str):
        voice_id = self.catalog.voice_for(self.name, character)
        profile = self.catalog.profile_for(emotion)

        url = f"{self.base_url}/v1/text-to-speech/{voice_id}"
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key or "",
        }
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": profile.as_voice_settings(),
        }
        return url, headers, payload


# ---------------------------------------------------------------------------
# OpenAI (secondary)
# ---------------------------------------------------------------------------


class OpenAIProvider(ProviderAdapter):
    """OpenAI TTS. No emotion tags; emotion only affects playback speed."""

    name = "openai"

    def __init__(
        self,
        catalog: VoiceCatalog,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com",
        model: str = "tts-1-hd",
        response_format: str = "mp3",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(catalog, api_key, base_url, session)
        self.model = model
        self.response_format = response_format

    def build_request(self, text: str, character: str, emotion: str):
        url = f"{self.base_url}/v1/audio/speech"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "input": text,
            "voice": self.catalog.voice_for(self.name, character),
            "response_format": self.response_format,
            "speed": self.catalog.speed_for(emotion),
        }
        return url, headers, payload


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROVIDER_CLASSES = {
    ElevenLabsProvider.name: ElevenLabsProvider,
    OpenAIProvider.name: OpenAIProvider,
}


def create_provider(
    name: str,
    settings,
    catalog: VoiceCatalog,
    session: Optional[aiohttp.ClientSession] = None,
) -> ProviderAdapter:
    """Create a provider adapter by name from application settings."""
    if name == ElevenLabsProvider.name:
        return ElevenLabsProvider(
            catalog,
            api_key=settings.elevenlabs_api_key,
            base_url=settings.elevenlabs_base_url,
            model_id=settings.elevenlabs_model_id,
            session=session,
        )
    if name == OpenAIProvider.name:
        return OpenAIProvider(
            catalog,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.openai_tts_model,
            session=session,
        )
    raise ValueError(
        f"Unknown provider '{name}'. Available: {', '.join(sorted(_PROVIDER_CLASSES))}"
    )
