"""Ollama provider implementation using langchain-ollama.

Provides native Ollama integration for local LLM inference.
"""

import re
from typing import Sequence

import ollama
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from commandcore.llm.exceptions import (
    ProviderError,
    RequestTimeoutError,
    ServiceUnavailableError,
)
from commandcore.llm.message_types import Message, MessageRole
from commandcore.llm.response_types import LLMResponse


class OllamaProvider:
    """Ollama LLM implementation using langchain-ollama.

    Note:
    - Usage stats are not available via langchain-ollama interface
    - Reasoning models may wrap output in <think> blocks; they are stripped
    """

    # Match complete thinking blocks
    THINKING_PATTERN = re.compile(r"<think>.*?</think>\s*", re.DOTALL)
    # Match incomplete thinking blocks (cut off before closing tag)
    THINKING_INCOMPLETE = re.compile(r"<think>.*$", re.DOTALL)

    @staticmethod
    def _strip_thinking(content: str) -> str:
        """Remove <think>...</think> tags from response content."""
        result = OllamaProvider.THINKING_PATTERN.sub("", content)
        result = OllamaProvider.THINKING_INCOMPLETE.sub("", result)
        return result.strip()

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        default_model: str = "llama3.2",
    ) -> None:
        """Initialize Ollama provider.

        Args:
            base_url: Ollama server URL (e.g., http://localhost:11434).
            default_model: Default model to use for completions.
        """
        self._base_url = base_url
        self._default_model = default_model

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return "ollama"

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._default_model

    def _convert_messages(
        self, messages: Sequence[Message], system_prompt: str | None = None
    ) -> list[HumanMessage | AIMessage | SystemMessage]:
        """Convert our Message types to LangChain message format."""
        lc_messages: list[HumanMessage | AIMessage | SystemMessage] = []

        if system_prompt:
            lc_messages.append(SystemMessage(content=system_prompt))

        for msg in messages:
            if msg.role == MessageRole.USER:
                lc_messages.append(HumanMessage(content=msg.content))
            elif msg.role == MessageRole.ASSISTANT:
                lc_messages.append(AIMessage(content=msg.content))
            elif msg.role == MessageRole.SYSTEM:
                lc_messages.append(SystemMessage(content=msg.content))

        return lc_messages

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
        lc_messages = self._convert_messages(messages, system_prompt)
        model_name = model or self._default_model

        client = ChatOllama(
            base_url=self._base_url,
            model=model_name,
            temperature=temperature,
            num_predict=max_tokens,
            stop=list(stop_sequences) if stop_sequences else None,
        )

        try:
            response = await client.ainvoke(lc_messages)
        except ConnectionError as e:
            raise ServiceUnavailableError(f"Ollama is not running at {self._base_url}: {e}")
        except TimeoutError as e:
            raise RequestTimeoutError(str(e))
        except Exception as e:
            raise ProviderError(str(e), is_retryable=True)

        raw_content = response.content if isinstance(response.content, str) else ""
        return LLMResponse(
            content=self._strip_thinking(raw_content),
            finish_reason="stop",
            model=model_name,
            usage=None,
            raw_response=response,
        )

    async def check_availability(self) -> None:
        """Ask the Ollama server for its model list."""
        try:
            await ollama.AsyncClient(host=self._base_url).list()
        except Exception as e:
            raise ServiceUnavailableError(f"Ollama is not running at {self._base_url}: {e}")
