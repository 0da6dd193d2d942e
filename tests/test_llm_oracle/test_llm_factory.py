"""Tests for LLM provider and oracle factories."""

import pytest

from commandcore.config import ProviderConfig, Settings
from commandcore.llm.anthropic_provider import AnthropicProvider
from commandcore.llm.exceptions import UnsupportedProviderError
from commandcore.llm.factory import create_provider, get_oracle, get_provider
from commandcore.llm.ollama_provider import OllamaProvider
from commandcore.llm.openai_provider import OpenAIProvider
from commandcore.llm.oracle import ProviderOracle


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        openai_api_key="test-key",
        openai_base_url="http://localhost:8000/v1",
        ollama_base_url="http://ollama:11434",
    )


class TestCreateProvider:
    """Tests for create_provider."""

    def test_anthropic(self, test_settings):
        """Test creating an Anthropic provider."""
        provider = create_provider(ProviderConfig("anthropic", "claude-3-5-haiku-20241022"), test_settings)

        assert isinstance(provider, AnthropicProvider)
        assert provider.default_model == "claude-3-5-haiku-20241022"

    def test_openai(self, test_settings):
        """Test creating an OpenAI-compatible provider."""
        provider = create_provider(ProviderConfig("openai", "gpt-4o-mini"), test_settings)

        assert isinstance(provider, OpenAIProvider)
        assert provider._base_url == "http://localhost:8000/v1"

    def test_ollama(self, test_settings):
        """Test creating an Ollama provider."""
        provider = create_provider(ProviderConfig("ollama", "llama3.2:1b"), test_settings)

        assert isinstance(provider, OllamaProvider)
        assert provider.default_model == "llama3.2:1b"
        assert provider._base_url == "http://ollama:11434"

    def test_unsupported(self, test_settings):
        """Unknown providers raise UnsupportedProviderError."""
        with pytest.raises(UnsupportedProviderError):
            create_provider(ProviderConfig("mistral", "7b"), test_settings)  # type: ignore[arg-type]


class TestFromSettings:
    """Tests for the settings-driven helpers."""

    def test_get_provider_uses_oracle_setting(self, test_settings):
        """The ORACLE setting picks provider and model."""
        test_settings.oracle = "anthropic:claude-3-5-haiku-20241022"

        provider = get_provider(test_settings)

        assert provider.provider_name == "anthropic"

    def test_get_oracle(self, test_settings):
        """get_oracle wraps the configured provider."""
        test_settings.oracle_max_tokens = 256

        oracle = get_oracle(test_settings)

        assert isinstance(oracle, ProviderOracle)
        assert oracle.provider.provider_name == "ollama"
        assert oracle._max_tokens == 256
