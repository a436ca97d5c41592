"""
Tests for pydantic-settings configuration.
"""

import pytest

from storyvoice.core.config import Settings


class TestSettingsDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.elevenlabs_api_key is None
        assert settings.openai_api_key is None
        assert settings.provider_names == ["elevenlabs", "openai"]
        assert settings.provider_timeout_seconds == 30.0
        assert settings.retry_max_retries == 3
        assert settings.retry_base_delay_seconds == 1.0
        assert settings.voice_cache_backend == "memory"
        assert settings.voice_cache_ttl_seconds == 86400
        assert settings.voice_cache_fallback_sentinel is True
        assert settings.cors_origin_list == ["*"]

    def test_unused_debug_env_is_ignored(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        settings = Settings(_env_file=None)

        assert "debug" not in Settings.model_fields
        assert not hasattr(settings, "debug")

    def test_secrets_from_environment(self, monkeypatch):
        monkeypatch.setenv("ELEVENLABS_API_KEY", "el-from-env")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        settings = Settings(_env_file=None)

        assert settings.elevenlabs_api_key == "el-from-env"
        assert settings.openai_api_key == "sk-from-env"

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("ELEVENLABS_API_KEY=el-from-file\nVOICE_CACHE_TTL_SECONDS=0\n")

        settings = Settings(_env_file=env_file)

        assert settings.elevenlabs_api_key == "el-from-file"
        assert settings.voice_cache_ttl_seconds == 0


class TestDerivedProperties:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("openai,elevenlabs", ["openai", "elevenlabs"]),
            (" ElevenLabs , ", ["elevenlabs"]),
            ("", []),
        ],
    )
    def test_provider_names(self, raw, expected):
        assert Settings(_env_file=None, provider_order=raw).provider_names == expected

    def test_cors_origin_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
        assert settings.cors_origin_list == ["http://a.test", "http://b.test"]
