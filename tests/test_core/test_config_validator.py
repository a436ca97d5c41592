"""
Tests for startup configuration validation.
"""

import logging

from storyvoice.core.config import Settings
from storyvoice.core.config_validator import _redact, log_config_summary, validate_config


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestValidateConfig:
    def test_defaults_are_valid(self):
        assert validate_config(_settings()) == []

    def test_missing_api_keys_are_not_errors(self):
        assert validate_config(_settings(elevenlabs_api_key=None, openai_api_key=None)) == []

    def test_unknown_provider(self):
        errors = validate_config(_settings(provider_order="elevenlabs,polly"))
        assert any("polly" in e for e in errors)

    def test_empty_provider_order(self):
        errors = validate_config(_settings(provider_order=""))
        assert any("at least one provider" in e for e in errors)

    def test_duplicate_provider(self):
        errors = validate_config(_settings(provider_order="openai,openai"))
        assert any("more than once" in e for e in errors)

    def test_unknown_cache_backend(self):
        errors = validate_config(_settings(voice_cache_backend="redis"))
        assert any("VOICE_CACHE_BACKEND" in e for e in errors)

    def test_negative_values(self):
        errors = validate_config(
            _settings(retry_max_retries=-1, voice_cache_ttl_seconds=-5, voice_cache_max_entries=0)
        )
        assert len(errors) == 3

    def test_database_url_checked_for_database_backend(self):
        errors = validate_config(
            _settings(voice_cache_backend="database", database_url="not a url")
        )
        assert any("DATABASE_URL" in e for e in errors)

    def test_database_url_ignored_for_memory_backend(self):
        assert validate_config(_settings(database_url="not a url")) == []


class TestConfigSummary:
    def test_redact(self):
        assert _redact("sk-abcdef") == "sk-a***"
        assert _redact("") == "<empty>"
        assert _redact(None) == "<empty>"

    def test_summary_never_logs_full_keys(self, caplog):
        settings = _settings(elevenlabs_api_key="el-secret-value", openai_api_key="sk-secret-value")
        with caplog.at_level(logging.INFO, logger="storyvoice.core.config_validator"):
            log_config_summary(settings)

        assert "el-secret-value" not in caplog.text
        assert "sk-secret-value" not in caplog.text
        assert "el-s***" in caplog.text

    def test_warns_without_any_keys(self, caplog):
        with caplog.at_level(logging.WARNING, logger="storyvoice.core.config_validator"):
            log_config_summary(_settings(elevenlabs_api_key=None, openai_api_key=None))

        assert "browser synthesis" in caplog.text
