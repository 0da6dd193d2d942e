"""Text oracle backed by an LLM provider."""

import logging

from commandcore.llm.base import LLMProvider
from commandcore.llm.exceptions import EmptyResponseError
from commandcore.llm.message_types import Message

logger = logging.getLogger(__name__)


class ProviderOracle:
    """Adapts an LLMProvider to the prompt-in, text-out TextOracle interface.

    Generation runs at temperature 0 so the same prompt keeps producing the
    same task JSON.
    """

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_tokens: int = 512,
    ) -> None:
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens

    @property
    def provider(self) -> LLMProvider:
        """The wrapped provider."""
        return self._provider

    async def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate text for a prompt.

        Args:
            prompt: User-level prompt text.
            system_prompt: Optional system-level instructions.

        Returns:
            Raw generated text.

        Raises:
            EmptyResponseError: If the provider returns only whitespace.
            LLMError: Any provider failure, already mapped.
        """
        response = await self._provider.complete(
            messages=[Message.user(prompt)],
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=0.0,
            system_prompt=system_prompt,
        )
        if not response.content or not response.content.strip():
            raise EmptyResponseError()
        logger.debug(f"Oracle ({self._provider.provider_name}) returned {len(response.content)} chars")
        return response.content

    async def check_availability(self) -> None:
        """Delegate the reachability check to the provider."""
        await self._provider.check_availability()
