"""Tests for command-core configuration."""

import pytest

from commandcore.config import ProviderConfig, Settings, get_settings, parse_provider_config


class TestParseProviderConfig:
    """Tests for provider:model parsing."""

    def test_provider_and_model(self):
        assert parse_provider_config("anthropic:claude-3-5-haiku-20241022") == ProviderConfig(
            provider="anthropic", model="claude-3-5-haiku-20241022"
        )

    def test_model_with_colon_tag(self):
        """Only the first segment is treated as the provider."""
        assert parse_provider_config("ollama:llama3.2:1b") == ProviderConfig(
            provider="ollama", model="llama3.2:1b"
        )

    def test_unknown_prefix_is_part_of_model(self):
        """An unrecognised prefix falls back to the default provider."""
        assert parse_provider_config("mistral:7b") == ProviderConfig(provider="ollama", model="mistral:7b")

    def test_bare_model_custom_default(self):
        assert parse_provider_config("gpt-4o-mini", default_provider="openai").provider == "openai"


class TestSettingsDefaults:
    """Tests for default configuration values."""

    @pytest.fixture
    def defaults(self, monkeypatch) -> Settings:
        """Settings built without .env file or overriding env vars."""
        for name in ("ORACLE", "CONFIRMATION_THRESHOLD", "CACHE_TTL_SECONDS", "ENABLE_CACHING"):
            monkeypatch.delenv(name, raising=False)
        return Settings(_env_file=None)

    def test_oracle_defaults_to_local_ollama(self, defaults):
        assert defaults.oracle_config == ProviderConfig(provider="ollama", model="llama3.2")
        assert defaults.oracle_health_check is True

    def test_confirmation_defaults(self, defaults):
        assert defaults.confirmation_threshold == 0.9
        assert defaults.confirmation_timeout_seconds == 30.0
        assert defaults.max_pending_confirmations == 10

    def test_cache_defaults(self, defaults):
        assert defaults.enable_caching is True
        assert defaults.cache_size == 1000
        assert defaults.cache_ttl_seconds == 3600.0


class TestSettingsFromEnvironment:
    """Tests for environment overrides."""

    def test_env_vars_override(self, monkeypatch):
        """Environment variables are read case-insensitively."""
        monkeypatch.setenv("ORACLE", "openai:gpt-4o-mini")
        monkeypatch.setenv("confirmation_threshold", "0.75")
        monkeypatch.setenv("ENABLE_CACHING", "false")

        settings = Settings(_env_file=None)

        assert settings.oracle_config.provider == "openai"
        assert settings.confirmation_threshold == 0.75
        assert settings.enable_caching is False

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
