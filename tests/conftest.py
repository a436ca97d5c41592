import asyncio
import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import pytest

# Set test environment variables before any storyvoice import reads them
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_TO_FILE"] = "false"
os.environ.pop("ELEVENLABS_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

from storyvoice.core.config import Settings  # noqa: E402
from storyvoice.core.voice_catalog import VoiceCatalog  # noqa: E402
from storyvoice.utils.logging import RequestContext  # noqa: E402

HANG = object()


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture(autouse=True)
def _clear_request_context():
    RequestContext.clear()
    yield
    RequestContext.clear()


# =============================================================================
# Fake aiohttp session
# =============================================================================


class FakeResponse:
    """Stand-in for an aiohttp ClientResponse used as an async context manager."""

    def __init__(self, status: int, body: Any = b""):
        self.status = status
        self._body = body if isinstance(body, bytes) else str(body).encode("utf-8")

    async def read(self) -> bytes:
        return self._body

    async def text(self) -> str:
        return self._body.decode("utf-8", errors="replace")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records outbound calls and replays scripted responses.

    The last scripted item repeats once the script runs out.
    """

    def __init__(self, responses: Sequence[Any]):
        self._responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, json: Optional[Dict[str, Any]] = None, headers=None):
        self.calls.append({"url": url, "json": json, "headers": headers or {}})
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


# =============================================================================
# Scripted provider adapter
# =============================================================================


class ScriptedAdapter:
    """Provider adapter double: each call consumes the next scripted outcome.

    An outcome is audio bytes, an exception to raise, or HANG to block until
    cancelled. The last outcome repeats once the script runs out.
    """

    def __init__(self, name: str, outcomes: Sequence[Any], configured: bool = True, delay: float = 0):
        self.name = name
        self._outcomes = list(outcomes)
        self._configured = configured
        self._delay = delay
        self.calls: List[tuple] = []

    def is_configured(self) -> bool:
        return self._configured

    async def synthesize(self, text: str, character: str, emotion: str) -> bytes:
        self.calls.append((text, character, emotion))
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if self._delay:
            await asyncio.sleep(self._delay)
        if outcome is HANG:
            await asyncio.Event().wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    """Injectable sleep that records requested delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def catalog() -> VoiceCatalog:
    """The bundled voice catalog from config/voices.yaml."""
    return VoiceCatalog.load()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        elevenlabs_api_key="el-test-key",
        openai_api_key="sk-test-key",
        log_to_file=False,
    )


@pytest.fixture
def fake_session():
    """Factory for FakeSession instances."""
    return FakeSession


@pytest.fixture
def fake_response():
    """Factory for FakeResponse instances."""
    return FakeResponse


@pytest.fixture
def scripted_adapter():
    """Factory for ScriptedAdapter instances."""
    return ScriptedAdapter


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def hang():
    """Outcome marker that makes a ScriptedAdapter block until cancelled."""
    return HANG
