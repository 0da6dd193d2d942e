"""LLM response type definitions."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UsageStats:
    """Token usage statistics.

    Attributes:
        prompt_tokens: Tokens in the input.
        completion_tokens: Tokens in the output.
        total_tokens: Combined total.
    """

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class LLMResponse:
    """Response from an oracle completion.

    Attributes:
        content: Generated text.
        finish_reason: Why generation stopped.
        model: Model that generated the response.
        usage: Token usage statistics.
        raw_response: Provider's raw response (for debugging).
    """

    content: str
    finish_reason: str = "stop"
    model: str = ""
    usage: UsageStats | None = None
    raw_response: Any = None

    def __hash__(self) -> int:
        """Hash based on immutable fields."""
        return hash((self.content, self.finish_reason, self.model))
