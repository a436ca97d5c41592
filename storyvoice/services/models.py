"""Request and result types shared by the voice pipeline."""

import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..domain.errors import ErrorKind

BROWSER_SYNTHESIS = "BROWSER_SYNTHESIS"
AUDIO_DATA_URI_PREFIX = "data:audio/mpeg;base64,"

REQUIRED_FIELDS = ("text", "character", "emotion")


def encode_audio(audio: bytes) -> str:
    """Encode raw audio as a data URI the front end can play directly."""
    return AUDIO_DATA_URI_PREFIX + base64.b64encode(audio).decode("ascii")


@dataclass
class VoiceRequest:
    """A single narration request."""

    text: Optional[str]
    character: Optional[str]
    emotion: Optional[str]
    provider_preference: Optional[str] = None

    def missing_fields(self) -> List[str]:
        missing = []
        for field_name in REQUIRED_FIELDS:
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                missing.append(field_name)
        return missing


@dataclass
class VoiceResult:
    """Outcome of a narration request."""

    audio_payload: str = ""
    success: bool = False
    used_fallback: bool = False
    cached: bool = False
    error_kind: Optional[ErrorKind] = None
    provider: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_sentinel(self) -> bool:
        return self.audio_payload == BROWSER_SYNTHESIS

    def to_response(self) -> Dict[str, Any]:
        """Serialize for the HTTP API (camelCase, optional keys omitted)."""
        response: Dict[str, Any] = {"success": self.success}
        if self.success:
            response["audioUrl"] = self.audio_payload
        if self.cached:
            response["cached"] = True
        if self.used_fallback:
            response["usedFallback"] = True
        if self.provider:
            response["provider"] = self.provider
        if self.error:
            response["error"] = self.error
        if self.error_kind is not None:
            response["errorKind"] = self.error_kind.value
        return response
