"""
Tests for the JSON log formatter and RequestContext contextvar propagation.

Tests cover:
- JSONFormatter output shape (required fields)
- Context ID injection via RequestContextFilter
- RequestContext contextvar get/set/clear
- Console formatter used in development, JSON formatter in production
- Structured synthesis events
"""

import json
import logging
import os
from io import StringIO

import pytest

from storyvoice.utils.logging import (
    JSONFormatter,
    RequestContext,
    RequestContextFilter,
    get_voice_logger,
    log_synthesis_event,
    setup_logging,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def logger_with_json():
    """Create a logger with JSONFormatter attached to a StringIO handler."""
    logger = logging.getLogger("test.json_formatter")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()


@pytest.fixture
def restore_root_logging(tmp_path, monkeypatch):
    """Run setup_logging in a temp dir and restore root handlers afterwards."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers.copy()
    original_level = root_logger.level
    monkeypatch.chdir(tmp_path)

    yield root_logger

    for handler in root_logger.handlers:
        if handler not in original_handlers:
            handler.close()
    root_logger.handlers.clear()
    for h in original_handlers:
        root_logger.addHandler(h)
    root_logger.setLevel(original_level)


def _console_handlers(root_logger):
    return [
        h
        for h in root_logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


# =============================================================================
# JSONFormatter Output Shape Tests
# =============================================================================


class TestJSONFormatterShape:
    """Tests for JSONFormatter output fields."""

    def test_output_is_valid_json(self, logger_with_json):
        logger, stream = logger_with_json
        logger.info("test message")
        parsed = json.loads(stream.getvalue().strip())
        assert isinstance(parsed, dict)

    def test_required_fields(self, logger_with_json):
        logger, stream = logger_with_json
        logger.warning("hello world")
        parsed = json.loads(stream.getvalue().strip())

        assert parsed["level"] == "WARNING"
        assert parsed["logger"] == "test.json_formatter"
        assert parsed["message"] == "hello world"
        assert "T" in parsed["timestamp"]

    def test_exception_info_included(self, logger_with_json):
        logger, stream = logger_with_json
        try:
            raise ValueError("test error")
        except ValueError:
            logger.exception("caught error")

        parsed = json.loads(stream.getvalue().strip())
        assert "ValueError" in parsed["exception"]
        assert "test error" in parsed["exception"]


# =============================================================================
# RequestContext Tests
# =============================================================================


class TestRequestContext:
    """Tests for RequestContext contextvar management."""

    def test_get_returns_none_by_default(self):
        assert RequestContext.get() == {"request_id": None, "cache_key": None}

    def test_set_and_get(self):
        RequestContext.set(request_id="req-1", cache_key="voice_narrator_calm_abc")
        ctx = RequestContext.get()
        assert ctx["request_id"] == "req-1"
        assert ctx["cache_key"] == "voice_narrator_calm_abc"

    def test_partial_set_preserves_other_fields(self):
        RequestContext.set(request_id="req-1")
        RequestContext.set(cache_key="voice_x")
        assert RequestContext.get() == {"request_id": "req-1", "cache_key": "voice_x"}

    def test_clear_resets_all_fields(self):
        RequestContext.set(request_id="req-1", cache_key="voice_x")
        RequestContext.clear()
        assert RequestContext.get() == {"request_id": None, "cache_key": None}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            RequestContext.set(chat_id="c1")


# =============================================================================
# RequestContextFilter Tests
# =============================================================================


class TestRequestContextFilter:
    def test_injects_context(self, logger_with_json):
        logger, stream = logger_with_json
        RequestContext.set(request_id="req-abc", cache_key="voice_k")
        logger.info("test")
        parsed = json.loads(stream.getvalue().strip())
        assert parsed["request_id"] == "req-abc"
        assert parsed["cache_key"] == "voice_k"

    def test_no_context_fields_when_unset(self, logger_with_json):
        logger, stream = logger_with_json
        logger.info("test")
        parsed = json.loads(stream.getvalue().strip())
        assert "request_id" not in parsed
        assert "cache_key" not in parsed

    def test_explicit_extra_wins(self, logger_with_json):
        logger, stream = logger_with_json
        RequestContext.set(request_id="from-context")
        logger.info("test", extra={"request_id": "from-extra"})
        parsed = json.loads(stream.getvalue().strip())
        assert parsed["request_id"] == "from-extra"


# =============================================================================
# Setup Logging Mode Tests
# =============================================================================


class TestSetupLoggingModes:
    """Tests for JSON vs console formatter selection."""

    def test_json_formatter_in_production(self, restore_root_logging, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        setup_logging(log_level="INFO", log_to_file=False)

        handlers = _console_handlers(restore_root_logging)
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JSONFormatter)

    def test_console_formatter_in_development(self, restore_root_logging, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        setup_logging(log_level="INFO", log_to_file=False)

        handlers = _console_handlers(restore_root_logging)
        assert len(handlers) == 1
        assert not isinstance(handlers[0].formatter, JSONFormatter)

    def test_file_handlers(self, restore_root_logging, tmp_path, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        setup_logging(log_level="DEBUG", log_to_file=True)

        file_handlers = [
            h for h in restore_root_logging.handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 2
        assert (tmp_path / "logs").is_dir()
        assert restore_root_logging.level == logging.DEBUG


# =============================================================================
# Structured synthesis events
# =============================================================================


class RecordingLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **kwargs):
        self.events.append((event, kwargs))


class TestSynthesisEvents:
    def test_event_includes_request_context(self):
        logger = RecordingLogger()
        RequestContext.set(request_id="req-9", cache_key="voice_k")

        log_synthesis_event("voice_generated", logger=logger, provider="openai")

        assert logger.events == [
            ("voice_generated", {"request_id": "req-9", "cache_key": "voice_k", "provider": "openai"})
        ]

    def test_details_override_context(self):
        logger = RecordingLogger()
        RequestContext.set(cache_key="from-context")

        log_synthesis_event("voice_cache_hit", logger=logger, cache_key="explicit")

        assert logger.events[0][1]["cache_key"] == "explicit"

    def test_get_voice_logger(self):
        assert get_voice_logger() is not None
