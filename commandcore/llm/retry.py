"""Retrying oracle calls.

Two kinds of failure are worth another try. Transient provider failures
(rate limits, timeouts, retryable 5xx) back off exponentially. An empty
completion is re-asked straight away, a bounded number of times, since
small local models occasionally emit nothing for a prompt they answer
fine on the next sample.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from commandcore.llm.exceptions import EmptyResponseError, LLMError, ProviderError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Limits for retrying oracle calls.

    Attributes:
        max_retries: Backed-off retries for transient provider failures.
        initial_delay: First backoff delay in seconds.
        max_delay: Cap on any single backoff delay.
        exponential_base: Growth factor between backoff delays.
        jitter: Add up to 25% random extra to each delay.
        empty_response_retries: Immediate re-asks after an empty completion.
            Counted separately from ``max_retries``.
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    empty_response_retries: int = 1


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """Call an oracle coroutine, retrying what is worth retrying.

    Args:
        func: Async callable, usually ``TextOracle.generate``.
        *args: Positional arguments for func.
        config: Retry limits; defaults to ``RetryConfig()``.
        **kwargs: Keyword arguments for func.

    Returns:
        The first successful result.

    Raises:
        EmptyResponseError: Once the empty-response re-asks are used up.
        LLMError: Any non-transient failure, or the last transient one.
    """
    config = config or RetryConfig()
    backoffs = 0
    reasks = 0

    while True:
        try:
            return await func(*args, **kwargs)
        except EmptyResponseError:
            if reasks >= config.empty_response_retries:
                raise
            reasks += 1
            logger.warning(
                f"Oracle returned an empty response, asking again "
                f"({reasks}/{config.empty_response_retries})"
            )
        except LLMError as e:
            delay = backoff_delay(e, backoffs, config)
            if delay is None:
                raise
            backoffs += 1
            logger.debug(f"Oracle call failed ({e}), retry {backoffs}/{config.max_retries} in {delay:.2f}s")
            await asyncio.sleep(delay)


def backoff_delay(error: LLMError, attempt: int, config: RetryConfig) -> float | None:
    """Delay before retrying ``error``, or None when it must propagate."""
    if not isinstance(error, ProviderError) or not error.is_retryable:
        return None
    if attempt >= config.max_retries:
        return None
    retry_after = error.retry_after if isinstance(error, RateLimitError) else None
    return calculate_delay(attempt, config, retry_after)


def calculate_delay(
    attempt: int,
    config: RetryConfig,
    retry_after: float | None = None,
) -> float:
    """Backoff delay for a 0-indexed retry attempt.

    A server-provided ``retry_after`` raises the delay but never lowers it.
    """
    delay = min(config.initial_delay * (config.exponential_base**attempt), config.max_delay)
    if retry_after is not None:
        delay = max(delay, retry_after)
    if config.jitter:
        delay += random.uniform(0, delay * 0.25)
    return delay
