"""
Voice catalog loaded from YAML.

Provides a layered configuration:
1. config/voices.yaml - base catalog (checked into repo)
2. an optional override file - merged on top (VOICE_CATALOG_OVERRIDE_PATH)

The catalog holds the per-provider character -> voice id tables, the
per-emotion synthesis profiles, per-emotion playback speeds and the lists
advertised to clients.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CHARACTER = "narrator"
DEFAULT_EMOTION = "calm"
DEFAULT_SPEED = 1.0


class VoiceCatalogError(ValueError):
    """The voice catalog file is missing or malformed."""


@dataclass(frozen=True)
class SynthesisProfile:
    """Per-emotion tuning sent to providers that accept voice settings."""

    stability: float = 0.85
    similarity_boost: float = 0.9
    style: float = 0.35
    use_speaker_boost: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SynthesisProfile":
        return cls(
            stability=float(data.get("stability", cls.stability)),
            similarity_boost=float(data.get("similarity_boost", cls.similarity_boost)),
            style=float(data.get("style", cls.style)),
            use_speaker_boost=bool(data.get("use_speaker_boost", False)),
        )

    def as_voice_settings(self) -> Dict[str, Any]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


def get_project_root() -> Path:
    """Get the project root directory."""
    # Navigate up from storyvoice/core/voice_catalog.py
    return Path(__file__).parent.parent.parent


def default_catalog_path() -> Path:
    return get_project_root() / "config" / "voices.yaml"


def load_yaml_file(file_path: Path) -> Dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary."""
    if not file_path.exists():
        return {}

    with open(file_path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)
        return content if content else {}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def expand_path(path: str) -> str:
    """Expand ~ and environment variables in a path."""
    if not path:
        return path
    return os.path.expanduser(os.path.expandvars(path))


class VoiceCatalog:
    """Static lookup tables for character voices and emotion profiles."""

    def __init__(
        self,
        provider_voices: Dict[str, Dict[str, str]],
        emotions: Dict[str, SynthesisProfile],
        speeds: Optional[Dict[str, float]] = None,
        characters: Optional[List[str]] = None,
        advertised_emotions: Optional[List[str]] = None,
    ):
        for provider, voices in provider_voices.items():
            if DEFAULT_CHARACTER not in voices:
                raise VoiceCatalogError(
                    f"Provider '{provider}' has no '{DEFAULT_CHARACTER}' voice"
                )
        if DEFAULT_EMOTION not in emotions:
            raise VoiceCatalogError(f"Emotion table has no '{DEFAULT_EMOTION}' profile")

        self._provider_voices = provider_voices
        self._emotions = emotions
        self._speeds = speeds or {}
        self.characters = list(
            characters or sorted(next(iter(provider_voices.values()), {}))
        )
        self.emotions = list(advertised_emotions or sorted(emotions))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoiceCatalog":
        """Build a catalog from the parsed YAML structure."""
        providers = data.get("providers") or {}
        if not providers:
            raise VoiceCatalogError("Voice catalog defines no providers")

        provider_voices = {
            name: {str(k): str(v) for k, v in (section or {}).get("voices", {}).items()}
            for name, section in providers.items()
        }
        emotions = {
            str(name): SynthesisProfile.from_dict(profile or {})
            for name, profile in (data.get("emotions") or {}).items()
        }
        speeds = {str(k): float(v) for k, v in (data.get("speeds") or {}).items()}
        advertised = data.get("advertised") or {}

        return cls(
            provider_voices=provider_voices,
            emotions=emotions,
            speeds=speeds,
            characters=advertised.get("characters"),
            advertised_emotions=advertised.get("emotions"),
        )

    @classmethod
    def load(
        cls,
        catalog_path: Optional[Path] = None,
        override_path: Optional[Path] = None,
    ) -> "VoiceCatalog":
        """
        Load the catalog from YAML.

        Args:
            catalog_path: Base catalog (defaults to config/voices.yaml)
            override_path: Optional file deep-merged over the base

        Returns:
            VoiceCatalog instance
        """
        catalog_path = catalog_path or default_catalog_path()
        if not catalog_path.exists():
            raise VoiceCatalogError(f"Voice catalog not found: {catalog_path}")

        data = load_yaml_file(catalog_path)
        if override_path is not None:
            overrides = load_yaml_file(override_path)
            if overrides:
                logger.info(f"Merging voice catalog overrides from {override_path}")
                data = deep_merge(data, overrides)

        catalog = cls.from_dict(data)
        logger.info(
            f"Voice catalog loaded: providers={catalog.providers}, "
            f"emotions={len(catalog._emotions)}"
        )
        return catalog

    @classmethod
    def from_settings(cls, settings) -> "VoiceCatalog":
        catalog_path = (
            Path(expand_path(settings.voice_catalog_path))
            if settings.voice_catalog_path
            else None
        )
        override_path = (
            Path(expand_path(settings.voice_catalog_override_path))
            if settings.voice_catalog_override_path
            else None
        )
        return cls.load(catalog_path, override_path)

    # -- Lookups --

    @property
    def providers(self) -> List[str]:
        return list(self._provider_voices)

    def voice_for(self, provider: str, character: str) -> str:
        """Resolve a character to a provider voice id, falling back to narrator."""
        try:
            voices = self._provider_voices[provider]
        except KeyError:
            raise VoiceCatalogError(f"No voices configured for provider '{provider}'")
        return voices.get(character, voices[DEFAULT_CHARACTER])

    def profile_for(self, emotion: str) -> SynthesisProfile:
        """Resolve an emotion to its profile, falling back to calm."""
        return self._emotions.get(emotion, self._emotions[DEFAULT_EMOTION])

    def speed_for(self, emotion: str) -> float:
        return self._speeds.get(emotion, DEFAULT_SPEED)
