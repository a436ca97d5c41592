"""
Typed domain errors for the narration voice service.

Callers distinguish validation problems from provider failures, and
transient provider failures (retry) from fatal ones (fall through to the
next provider). The classification is the only signal the retry and
fallback layers look at.
"""

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    """Error categories surfaced on a VoiceResult."""

    VALIDATION = "ValidationError"
    PROVIDERS_UNAVAILABLE = "ProvidersUnavailable"


class DomainError(Exception):
    """Base class for all domain-specific errors."""


class VoiceValidationError(DomainError):
    """A voice request is missing one or more required fields."""

    kind = ErrorKind.VALIDATION

    def __init__(self, missing_fields: Iterable[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Missing required parameters: " + ", ".join(self.missing_fields)
        )


# ---------------------------------------------------------------------------
# Provider failures
# ---------------------------------------------------------------------------


class ProviderError(DomainError):
    """A TTS provider call failed."""

    def __init__(
        self, provider: str, message: str, status: Optional[int] = None
    ) -> None:
        self.provider = provider
        self.status = status
        self.message = message
        prefix = f"{provider} API error"
        if status is not None:
            prefix += f": {status}"
        super().__init__(f"{prefix} - {message}")


class ProviderTransientError(ProviderError):
    """Rate-limited, overloaded, unreachable or timed out. Worth retrying."""


class ProviderFatalError(ProviderError):
    """Bad credentials, malformed request, unknown voice. Never retried."""


class ProviderExhausted(DomainError):
    """A provider stayed transiently unavailable through every retry."""

    def __init__(self, provider: str, attempts: int) -> None:
        self.provider = provider
        self.attempts = attempts
        super().__init__(
            f"{provider} API repeatedly busy after {attempts} attempts - "
            "switching to fallback"
        )


class ConfigurationError(DomainError):
    """Startup configuration is invalid."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
