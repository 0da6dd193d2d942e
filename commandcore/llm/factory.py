"""LLM provider factory.

Factory functions for creating providers and oracles from settings.
"""

from commandcore.config import ProviderConfig, Settings, get_settings
from commandcore.llm.anthropic_provider import AnthropicProvider
from commandcore.llm.base import LLMProvider
from commandcore.llm.exceptions import UnsupportedProviderError
from commandcore.llm.openai_provider import OpenAIProvider
from commandcore.llm.oracle import ProviderOracle


def create_provider(config: ProviderConfig, settings: Settings | None = None) -> LLMProvider:
    """Create an LLM provider from a ProviderConfig.

    Args:
        config: Parsed provider configuration with provider type and model.
        settings: Settings holding credentials (defaults to cached settings).

    Returns:
        Configured LLMProvider instance.

    Raises:
        UnsupportedProviderError: If provider type is not supported.
    """
    settings = settings or get_settings()

    if config.provider == "anthropic":
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            default_model=config.model,
        )
    elif config.provider == "openai":
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            default_model=config.model,
            base_url=settings.openai_base_url,
        )
    elif config.provider == "ollama":
        from commandcore.llm.ollama_provider import OllamaProvider

        return OllamaProvider(
            base_url=settings.ollama_base_url,
            default_model=config.model,
        )
    raise UnsupportedProviderError(f"Provider '{config.provider}' is not supported")


def get_provider(settings: Settings | None = None) -> LLMProvider:
    """Get the provider configured by the ORACLE env var."""
    settings = settings or get_settings()
    return create_provider(settings.oracle_config, settings)


def get_oracle(settings: Settings | None = None) -> ProviderOracle:
    """Get the text oracle used for command interpretation.

    Uses the ORACLE env var (format: provider:model).
    Default: ollama:llama3.2

    Returns:
        ProviderOracle wrapping the configured provider.
    """
    settings = settings or get_settings()
    return ProviderOracle(
        provider=get_provider(settings),
        max_tokens=settings.oracle_max_tokens,
    )
