"""Tests for oracle retry utilities."""

from unittest.mock import AsyncMock, patch

import pytest

from commandcore.llm.exceptions import (
    AuthenticationError,
    EmptyResponseError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    ServiceUnavailableError,
)
from commandcore.llm.retry import RetryConfig, calculate_delay, with_retry


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    def test_default_config(self):
        """Test default retry configuration."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.initial_delay == 1.0
        assert config.max_delay == 60.0
        assert config.exponential_base == 2.0
        assert config.jitter is True
        assert config.empty_response_retries == 1


class TestCalculateDelay:
    """Tests for calculate_delay."""

    def test_exponential_without_jitter(self):
        """Delays grow geometrically and are capped."""
        config = RetryConfig(initial_delay=1.0, max_delay=5.0, jitter=False)

        assert [calculate_delay(n, config) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_retry_after_wins_when_longer(self):
        """A server-provided retry_after extends the delay."""
        config = RetryConfig(initial_delay=1.0, jitter=False)

        assert calculate_delay(0, config, retry_after=7.5) == 7.5

    def test_jitter_bounded(self):
        """Jitter adds at most a quarter of the delay."""
        config = RetryConfig(initial_delay=2.0, jitter=True)

        for _ in range(20):
            assert 2.0 <= calculate_delay(0, config) <= 2.5


class TestWithRetry:
    """Tests for with_retry function."""

    @pytest.mark.asyncio
    async def test_successful_call_no_retry(self):
        """Test that successful calls don't retry."""
        mock_func = AsyncMock(return_value='{"type": "mining"}')

        result = await with_retry(mock_func)

        assert result == '{"type": "mining"}'
        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_rate_limit(self):
        """Test retry on rate limit error."""
        mock_func = AsyncMock(side_effect=[RateLimitError("Rate limited"), "success"])
        config = RetryConfig(initial_delay=0.01, jitter=False)

        result = await with_retry(mock_func, config=config)

        assert result == "success"
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_retry_on_timeout(self):
        """Timeouts are transient and retried."""
        mock_func = AsyncMock(side_effect=[RequestTimeoutError(), "success"])
        config = RetryConfig(initial_delay=0.01, jitter=False)

        assert await with_retry(mock_func, config=config) == "success"

    @pytest.mark.asyncio
    async def test_no_retry_on_unavailable(self):
        """Categorical unavailability fails on the first call."""
        mock_func = AsyncMock(side_effect=ServiceUnavailableError())
        config = RetryConfig(initial_delay=0.01, jitter=False)

        with pytest.raises(ServiceUnavailableError):
            await with_retry(mock_func, config=config)

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_no_retry_on_auth_error(self):
        """Test no retry on authentication error."""
        mock_func = AsyncMock(side_effect=AuthenticationError("Invalid key"))

        with pytest.raises(AuthenticationError):
            await with_retry(mock_func, config=RetryConfig(initial_delay=0.01))

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_max_retries_exceeded(self):
        """Test that max retries are respected."""
        mock_func = AsyncMock(side_effect=ProviderError("Server error", is_retryable=True, status_code=500))
        config = RetryConfig(max_retries=2, initial_delay=0.01, jitter=False)

        with pytest.raises(ProviderError):
            await with_retry(mock_func, config=config)

        # Initial call + 2 retries
        assert mock_func.call_count == 3

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        """max_retries=0 makes a single attempt."""
        mock_func = AsyncMock(side_effect=RequestTimeoutError())

        with pytest.raises(RequestTimeoutError):
            await with_retry(mock_func, config=RetryConfig(max_retries=0))

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self):
        """The computed delay is awaited before each retry."""
        mock_func = AsyncMock(side_effect=[RateLimitError(retry_after=3.0), "success"])
        config = RetryConfig(initial_delay=1.0, jitter=False)

        with patch("commandcore.llm.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await with_retry(mock_func, config=config)

        sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    async def test_passes_arguments(self):
        """Test that arguments are passed to the function."""
        mock_func = AsyncMock(return_value="success")

        await with_retry(mock_func, "prompt", "system", kwarg1="value1")

        mock_func.assert_called_once_with("prompt", "system", kwarg1="value1")


class TestEmptyResponses:
    """Tests for re-asking after an empty completion."""

    @pytest.mark.asyncio
    async def test_reasks_once_by_default(self):
        """A single empty completion is followed by one more call."""
        mock_func = AsyncMock(side_effect=[EmptyResponseError(), '{"type": "mining"}'])

        result = await with_retry(mock_func, config=RetryConfig(max_retries=0))

        assert result == '{"type": "mining"}'
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_repeated_empty_raises(self):
        """Empty completions beyond the allowance propagate."""
        mock_func = AsyncMock(side_effect=EmptyResponseError())

        with pytest.raises(EmptyResponseError):
            await with_retry(mock_func, config=RetryConfig(empty_response_retries=2))

        assert mock_func.call_count == 3

    @pytest.mark.asyncio
    async def test_reask_can_be_disabled(self):
        mock_func = AsyncMock(side_effect=EmptyResponseError())

        with pytest.raises(EmptyResponseError):
            await with_retry(mock_func, config=RetryConfig(empty_response_retries=0))

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_reask_is_immediate_and_logged(self, caplog):
        """Re-asks do not back off and leave a warning."""
        mock_func = AsyncMock(side_effect=[EmptyResponseError(), "success"])

        with patch("commandcore.llm.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with caplog.at_level("WARNING", logger="commandcore.llm.retry"):
                await with_retry(mock_func)

        sleep.assert_not_awaited()
        assert "empty response" in caplog.text

    @pytest.mark.asyncio
    async def test_budgets_are_separate(self):
        """Empty re-asks do not consume transient-failure retries."""
        mock_func = AsyncMock(
            side_effect=[EmptyResponseError(), RequestTimeoutError(), "success"]
        )
        config = RetryConfig(max_retries=1, initial_delay=0.01, jitter=False)

        assert await with_retry(mock_func, config=config) == "success"
        assert mock_func.call_count == 3
