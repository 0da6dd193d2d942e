"""Oracle protocol definitions.

Defines the interfaces that LLM providers and text oracles implement.
"""

from typing import Protocol, Sequence, runtime_checkable

from commandcore.llm.message_types import Message
from commandcore.llm.response_types import LLMResponse


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    @property
    def provider_name(self) -> str:
        """Return provider identifier (e.g., 'anthropic', 'ollama')."""
        ...

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        ...

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        stop_sequences: Sequence[str] | None = None,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages.

        Args:
            messages: Conversation history.
            model: Model to use (defaults to provider's default).
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature (0.0-1.0).
            stop_sequences: Sequences that stop generation.
            system_prompt: System-level instructions.

        Returns:
            LLMResponse with text and metadata.
        """
        ...

    async def check_availability(self) -> None:
        """Fail fast when the provider cannot be reached.

        Raises:
            ServiceUnavailableError: If the backend is unreachable.
            AuthenticationError: If credentials are rejected.
        """
        ...


@runtime_checkable
class TextOracle(Protocol):
    """Prompt-in, text-out interface used by the task parser."""

    async def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate text (expected to be JSON shaped) for a prompt."""
        ...

    async def check_availability(self) -> None:
        """Raise ServiceUnavailableError when the oracle is unreachable."""
        ...
