"""Anthropic Claude provider implementation."""

from typing import Any, Sequence

from anthropic import AsyncAnthropic
from anthropic import (
    APIConnectionError as AnthropicConnectionError,
    APIError as AnthropicAPIError,
    APITimeoutError as AnthropicTimeoutError,
    AuthenticationError as AnthropicAuthError,
    BadRequestError as AnthropicBadRequestError,
    RateLimitError as AnthropicRateLimitError,
)

from commandcore.llm.exceptions import (
    AuthenticationError,
    ContentPolicyError,
    ContextLengthError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    ServiceUnavailableError,
)
from commandcore.llm.message_types import Message, MessageRole
from commandcore.llm.response_types import LLMResponse, UsageStats


class AnthropicProvider:
    """Anthropic Claude implementation of LLMProvider."""

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "claude-3-5-haiku-20241022",
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. If not provided, will use
                     ANTHROPIC_API_KEY environment variable.
            default_model: Default model to use for completions.
            client: Optional pre-configured client (for testing).
        """
        self._api_key = api_key
        self._default_model = default_model
        self._client_instance: AsyncAnthropic | None = client

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return "anthropic"

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._default_model

    def _get_client(self) -> AsyncAnthropic:
        """Get or create the async client."""
        if self._client_instance is None:
            self._client_instance = AsyncAnthropic(api_key=self._api_key or None)
        return self._client_instance

    def _convert_messages(
        self, messages: Sequence[Message]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Split out the system message and convert the rest to API format."""
        system_prompt: str | None = None
        api_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_prompt = msg.content
                continue
            role = "user" if msg.role == MessageRole.USER else "assistant"
            api_messages.append({"role": role, "content": msg.content})

        return system_prompt, api_messages

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse Anthropic API response into LLMResponse."""
        content = "".join(
            block.text for block in response.content if block.type == "text"
        )

        usage = None
        if response.usage:
            usage = UsageStats(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        return LLMResponse(
            content=content,
            finish_reason=response.stop_reason or "stop",
            model=response.model,
            usage=usage,
            raw_response=response,
        )

    async def _handle_api_error(self, error: Exception) -> None:
        """Convert Anthropic exceptions to our exception types."""
        if isinstance(error, AnthropicTimeoutError):
            raise RequestTimeoutError(str(error))
        elif isinstance(error, AnthropicConnectionError):
            raise ServiceUnavailableError(str(error))
        elif isinstance(error, AnthropicAuthError):
            raise AuthenticationError(str(error))
        elif isinstance(error, AnthropicRateLimitError):
            raise RateLimitError(str(error))
        elif isinstance(error, AnthropicBadRequestError):
            error_str = str(error).lower()
            if "context" in error_str or "token" in error_str:
                raise ContextLengthError(str(error))
            elif "content" in error_str or "policy" in error_str:
                raise ContentPolicyError(str(error))
            raise ProviderError(str(error), is_retryable=False)
        elif isinstance(error, AnthropicAPIError):
            # 5xx errors are retryable
            status_code = getattr(error, "status_code", None)
            is_retryable = status_code is not None and status_code >= 500
            raise ProviderError(str(error), is_retryable=is_retryable, status_code=status_code)
        raise error

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        stop_sequences: Sequence[str] | None = None,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages."""
        extracted_system, api_messages = self._convert_messages(messages)
        final_system = system_prompt or extracted_system

        try:
            kwargs: dict[str, Any] = {
                "model": model or self._default_model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": api_messages,
            }
            if final_system:
                kwargs["system"] = final_system
            if stop_sequences:
                kwargs["stop_sequences"] = list(stop_sequences)

            response = await self._get_client().messages.create(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            await self._handle_api_error(e)
            raise  # Should not reach here

    async def check_availability(self) -> None:
        """Probe the models endpoint to confirm the API is reachable."""
        try:
            await self._get_client().models.list(limit=1)
        except Exception as e:
            await self._handle_api_error(e)
            raise
