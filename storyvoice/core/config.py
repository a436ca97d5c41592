"""
Application configuration using Pydantic Settings.

Centralizes all configuration with environment variable support. Provider
credentials are read from the environment (or ``.env``) only.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    log_to_file: bool = True

    # Primary provider (ElevenLabs)
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    elevenlabs_model_id: str = "eleven_multilingual_v2"

    # Secondary provider (OpenAI)
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com"
    openai_tts_model: str = "tts-1-hd"

    # Fallback chain order, comma separated provider names
    provider_order: str = "elevenlabs,openai"

    # Timeouts and retry (seconds)
    provider_timeout_seconds: float = 30.0
    retry_max_retries: int = 3
    retry_base_delay_seconds: float = 1.0

    # Response cache
    voice_cache_backend: str = "memory"  # memory | database
    voice_cache_ttl_seconds: int = 86400  # 0 disables expiry
    voice_cache_max_entries: int = 10000
    voice_cache_fallback_sentinel: bool = True
    voice_cache_purge_interval_seconds: int = 3600  # 0 disables the purge task
    database_url: str = "sqlite+aiosqlite:///./data/storyvoice.db"

    # Voice catalog (YAML)
    voice_catalog_path: Optional[str] = None
    voice_catalog_override_path: Optional[str] = None

    # HTTP
    cors_origins: str = "*"

    @property
    def provider_names(self) -> List[str]:
        """Provider order as a list, empty entries dropped."""
        return [
            name.strip().lower()
            for name in self.provider_order.split(",")
            if name.strip()
        ]

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
