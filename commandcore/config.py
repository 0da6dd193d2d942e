"""Application configuration using pydantic-settings."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


ProviderType = Literal["anthropic", "openai", "ollama"]

VALID_PROVIDERS: tuple[str, ...] = ("anthropic", "openai", "ollama")


@dataclass
class ProviderConfig:
    """Parsed provider:model configuration."""

    provider: ProviderType
    model: str


def parse_provider_config(value: str, default_provider: ProviderType = "ollama") -> ProviderConfig:
    """Parse 'provider:model' format into ProviderConfig.

    Args:
        value: String in format 'provider:model' or just 'model'.
        default_provider: Provider to use if only model is specified.

    Returns:
        ProviderConfig with provider and model.

    Examples:
        >>> parse_provider_config("ollama:llama3.2:1b")
        ProviderConfig(provider='ollama', model='llama3.2:1b')

        >>> parse_provider_config("anthropic:claude-3-5-haiku-20241022")
        ProviderConfig(provider='anthropic', model='claude-3-5-haiku-20241022')

        >>> parse_provider_config("mistral:7b")  # No provider prefix
        ProviderConfig(provider='ollama', model='mistral:7b')
    """
    if ":" in value:
        first_part = value.split(":")[0]
        if first_part in VALID_PROVIDERS:
            model = value[len(first_part) + 1 :]
            return ProviderConfig(provider=first_part, model=model)  # type: ignore

    return ProviderConfig(provider=default_provider, model=value)


class Settings(BaseSettings):
    """Command-core settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str | None = None  # Custom endpoint for vLLM/DeepSeek

    # Ollama Settings
    ollama_base_url: str = "http://localhost:11434"

    # ==========================================================================
    # Oracle (provider:model format)
    # ==========================================================================
    # Examples:
    #   ORACLE=ollama:llama3.2
    #   ORACLE=anthropic:claude-3-5-haiku-20241022
    #   ORACLE=openai:gpt-4o-mini

    oracle: str = "ollama:llama3.2"
    oracle_max_tokens: int = 512
    oracle_max_retries: int = 3
    oracle_empty_response_retries: int = 1
    oracle_health_check: bool = True  # Fail fast when the oracle is down
    recovery_max_tracked_keys: int = 1000

    # ==========================================================================
    # Ambiguity / Confirmation
    # ==========================================================================
    ambiguity_margin: float = 0.2
    confirmation_threshold: float = 0.9
    confirmation_timeout_seconds: float = 30.0
    max_pending_confirmations: int = 10
    historical_option_discount: float = 0.8

    # ==========================================================================
    # Historical Patterns
    # ==========================================================================
    history_max_size: int = 1000
    history_decay_rate: float = 0.95  # Per hour
    history_relevance_floor: float = 0.1
    history_recent_limit: int = 5

    # ==========================================================================
    # Command Cache
    # ==========================================================================
    enable_caching: bool = True
    cache_size: int = 1000
    cache_ttl_seconds: float = 3600.0

    max_alternatives: int = 3
    disabled_task_types: list[str] = []  # e.g. ["combat"]; JSON list in the env

    # Debug
    debug: bool = False

    @property
    def oracle_config(self) -> ProviderConfig:
        """Get parsed oracle provider config."""
        return parse_provider_config(self.oracle)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
