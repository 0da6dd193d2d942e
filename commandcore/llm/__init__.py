"""Text-generation oracle layer.

Quick Start:
    from commandcore.llm import get_oracle

    oracle = get_oracle()  # Uses ORACLE from settings
    await oracle.check_availability()
    text = await oracle.generate("Convert this command to JSON: mine 5 iron ore")
"""

# Message types
from commandcore.llm.message_types import Message, MessageRole

# Response types
from commandcore.llm.response_types import LLMResponse, UsageStats

# Protocols
from commandcore.llm.base import LLMProvider, TextOracle

# Providers
from commandcore.llm.anthropic_provider import AnthropicProvider
from commandcore.llm.openai_provider import OpenAIProvider
from commandcore.llm.ollama_provider import OllamaProvider
from commandcore.llm.oracle import ProviderOracle

# Factory
from commandcore.llm.factory import create_provider, get_oracle, get_provider

# Retry utilities
from commandcore.llm.retry import RetryConfig, with_retry

# Exceptions
from commandcore.llm.exceptions import (
    LLMError,
    ProviderError,
    RateLimitError,
    AuthenticationError,
    ContentPolicyError,
    ContextLengthError,
    ServiceUnavailableError,
    RequestTimeoutError,
    EmptyResponseError,
    UnsupportedProviderError,
    StructuredOutputError,
)

__all__ = [
    "Message",
    "MessageRole",
    "LLMResponse",
    "UsageStats",
    "LLMProvider",
    "TextOracle",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "ProviderOracle",
    "create_provider",
    "get_oracle",
    "get_provider",
    "RetryConfig",
    "with_retry",
    "LLMError",
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ContentPolicyError",
    "ContextLengthError",
    "ServiceUnavailableError",
    "RequestTimeoutError",
    "EmptyResponseError",
    "UnsupportedProviderError",
    "StructuredOutputError",
]
