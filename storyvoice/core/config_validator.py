"""
Startup configuration validation and redacted summary logging.

Called early in the FastAPI lifespan to fail fast on misconfiguration.
"""

import logging
import re
from typing import List

from .config import Settings

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("elevenlabs", "openai")
CACHE_BACKENDS = ("memory", "database")

# Minimal pattern: scheme://... or scheme:///...
_SQLALCHEMY_URL_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*://")


def validate_config(settings: Settings) -> List[str]:
    """
    Validate application configuration and return a list of error strings.

    An empty list means the configuration is valid. Missing API keys are not
    errors: the affected provider fails fast and the chain falls through.
    """
    errors: List[str] = []

    # -- Provider chain ----------------------------------------------------
    names = settings.provider_names
    if not names:
        errors.append("PROVIDER_ORDER must name at least one provider")
    for name in names:
        if name not in KNOWN_PROVIDERS:
            errors.append(
                f"PROVIDER_ORDER contains unknown provider '{name}' "
                f"(expected one of: {', '.join(KNOWN_PROVIDERS)})"
            )
    if len(set(names)) != len(names):
        errors.append("PROVIDER_ORDER lists a provider more than once")

    # -- Retry and timeout -------------------------------------------------
    if settings.retry_max_retries < 0:
        errors.append("RETRY_MAX_RETRIES must be >= 0")
    if settings.retry_base_delay_seconds < 0:
        errors.append("RETRY_BASE_DELAY_SECONDS must be >= 0")
    if settings.provider_timeout_seconds < 0:
        errors.append("PROVIDER_TIMEOUT_SECONDS must be >= 0 (0 disables the timeout)")

    # -- Cache -------------------------------------------------------------
    backend = settings.voice_cache_backend.lower()
    if backend not in CACHE_BACKENDS:
        errors.append(
            f"VOICE_CACHE_BACKEND must be one of {', '.join(CACHE_BACKENDS)}: "
            f"'{settings.voice_cache_backend}'"
        )
    if settings.voice_cache_ttl_seconds < 0:
        errors.append("VOICE_CACHE_TTL_SECONDS must be >= 0 (0 disables expiry)")
    if settings.voice_cache_max_entries < 1:
        errors.append("VOICE_CACHE_MAX_ENTRIES must be >= 1")

    if backend == "database":
        db_url = (settings.database_url or "").strip()
        if not db_url:
            errors.append("DATABASE_URL is required when VOICE_CACHE_BACKEND=database")
        elif not _SQLALCHEMY_URL_RE.match(db_url):
            errors.append(
                f"DATABASE_URL format is invalid (expected SQLAlchemy URL like "
                f"'sqlite+aiosqlite:///...' or 'postgresql+asyncpg://...'): "
                f"'{db_url}'"
            )

    return errors


def _redact(secret: str) -> str:
    """Return first 4 characters followed by '***', or '<empty>' if blank."""
    if not secret:
        return "<empty>"
    return secret[:4] + "***"


def log_config_summary(settings: Settings) -> None:
    """Log an INFO-level summary of loaded configuration with secrets redacted."""
    summary_lines = [
        f"environment={settings.environment}",
        f"providers=[{', '.join(settings.provider_names)}]",
        f"cache={settings.voice_cache_backend}",
        f"cache_ttl={settings.voice_cache_ttl_seconds}s",
        f"timeout={settings.provider_timeout_seconds}s",
        f"elevenlabs_key={_redact(settings.elevenlabs_api_key)}",
        f"openai_key={_redact(settings.openai_api_key)}",
    ]

    logger.info("Config loaded: %s", " | ".join(summary_lines))

    if not settings.elevenlabs_api_key and not settings.openai_api_key:
        logger.warning(
            "No provider API keys configured - every request will use browser synthesis"
        )
