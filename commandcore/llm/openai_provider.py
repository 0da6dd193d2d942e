"""OpenAI provider implementation.

Supports OpenAI API and OpenAI-compatible APIs (DeepSeek, vLLM, LM Studio).
"""

from typing import Any, Sequence

from openai import AsyncOpenAI
from openai import (
    APIConnectionError as OpenAIConnectionError,
    APIError as OpenAIAPIError,
    APITimeoutError as OpenAITimeoutError,
    AuthenticationError as OpenAIAuthError,
    BadRequestError as OpenAIBadRequestError,
    RateLimitError as OpenAIRateLimitError,
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
from commandcore.llm.message_types import Message
from commandcore.llm.response_types import LLMResponse, UsageStats


class OpenAIProvider:
    """OpenAI GPT implementation of LLMProvider.

    Works against any OpenAI-compatible endpoint via ``base_url``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "gpt-4o-mini",
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. If not provided, will use
                     OPENAI_API_KEY environment variable.
            default_model: Default model to use for completions.
            base_url: Custom base URL for OpenAI-compatible APIs.
            client: Optional pre-configured client (for testing).
        """
        self._api_key = api_key
        self._default_model = default_model
        self._base_url = base_url
        self._client_instance: AsyncOpenAI | None = client

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return "openai"

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._default_model

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the async client."""
        if self._client_instance is None:
            kwargs: dict[str, Any] = {}
            if self._api_key:
                kwargs["api_key"] = self._api_key
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._client_instance = AsyncOpenAI(**kwargs)
        return self._client_instance

    def _convert_messages(
        self, messages: Sequence[Message], system_prompt: str | None = None
    ) -> list[dict[str, Any]]:
        """Convert our Message types to OpenAI chat format."""
        api_messages: list[dict[str, Any]] = []
        if system_prompt:
            api_messages.append({"role": "system", "content": system_prompt})
        for msg in messages:
            api_messages.append({"role": msg.role.value, "content": msg.content})
        return api_messages

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse OpenAI API response into LLMResponse."""
        choice = response.choices[0]
        usage = None
        if response.usage:
            usage = UsageStats(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "stop",
            model=response.model,
            usage=usage,
            raw_response=response,
        )

    async def _handle_api_error(self, error: Exception) -> None:
        """Convert OpenAI exceptions to our exception types."""
        if isinstance(error, OpenAITimeoutError):
            raise RequestTimeoutError(str(error))
        elif isinstance(error, OpenAIConnectionError):
            raise ServiceUnavailableError(str(error))
        elif isinstance(error, OpenAIAuthError):
            raise AuthenticationError(str(error))
        elif isinstance(error, OpenAIRateLimitError):
            raise RateLimitError(str(error))
        elif isinstance(error, OpenAIBadRequestError):
            error_str = str(error).lower()
            if "context" in error_str or "token" in error_str or "length" in error_str:
                raise ContextLengthError(str(error))
            elif "content" in error_str or "policy" in error_str:
                raise ContentPolicyError(str(error))
            raise ProviderError(str(error), is_retryable=False)
        elif isinstance(error, OpenAIAPIError):
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
        api_messages = self._convert_messages(messages, system_prompt)

        try:
            kwargs: dict[str, Any] = {
                "model": model or self._default_model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": api_messages,
            }
            if stop_sequences:
                kwargs["stop"] = list(stop_sequences)

            response = await self._get_client().chat.completions.create(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            await self._handle_api_error(e)
            raise

    async def check_availability(self) -> None:
        """List models to confirm the endpoint is reachable."""
        try:
            await self._get_client().models.list()
        except Exception as e:
            await self._handle_api_error(e)
            raise
