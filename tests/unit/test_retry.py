"""Unit tests for retry logic with backoff."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from gst.core.exceptions import ValidationError
from gst.resilience.retry import RetryConfig, async_retry_with_backoff, retry_with_backoff


def flaky(failures: int, exc: Exception, result="ok"):
    """Mock that raises ``exc`` ``failures`` times, then returns ``result``."""
    return Mock(side_effect=[exc] * failures + [result])


class TestRetryBasics:
    """Tests for basic retry functionality."""

    def test_immediate_success_no_retry(self):
        func = flaky(0, ConnectionError())
        assert retry_with_backoff(func, RetryConfig(max_attempts=3), (Exception,)) == "ok"
        assert func.call_count == 1

    def test_retries_on_specified_exception(self):
        func = flaky(1, ConnectionError("reset by peer"))
        result = retry_with_backoff(
            func, RetryConfig(max_attempts=3, initial_delay_seconds=0), (ConnectionError,)
        )
        assert result == "ok"
        assert func.call_count == 2

    def test_raises_after_max_attempts(self):
        func = Mock(side_effect=TimeoutError("bucket timeout"))
        with pytest.raises(TimeoutError):
            retry_with_backoff(
                func, RetryConfig(max_attempts=3, initial_delay_seconds=0), (TimeoutError,)
            )
        assert func.call_count == 3

    def test_does_not_retry_on_other_exceptions(self):
        func = Mock(side_effect=TypeError("bad payload"))
        with pytest.raises(TypeError):
            retry_with_backoff(func, RetryConfig(max_attempts=3), (ValueError,))
        assert func.call_count == 1

    def test_arguments_are_forwarded(self):
        func = flaky(1, ValueError())
        retry_with_backoff(
            func,
            RetryConfig(max_attempts=2, initial_delay_seconds=0),
            (ValueError,),
            "bucket",
            key="artifact",
        )
        func.assert_called_with("bucket", key="artifact")


class TestDelays:
    """Tests for delay calculation."""

    def test_exponential_growth_is_capped(self):
        config = RetryConfig(
            initial_delay_seconds=1.0, max_delay_seconds=5.0, exponential_base=2.0, jitter=False
        )
        assert [config.delay_for(a) for a in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_fixed_delay(self):
        config = RetryConfig.fixed(max_attempts=3, delay_seconds=1.0)
        assert [config.delay_for(a) for a in range(3)] == [1.0, 1.0, 1.0]
        assert config.max_attempts == 3

    def test_jitter_stays_within_bounds(self):
        config = RetryConfig(initial_delay_seconds=2.0, jitter=True)
        for _ in range(20):
            assert 1.0 <= config.delay_for(0) <= 3.0

    def test_sleeps_between_attempts(self):
        func = flaky(2, ConnectionError())
        with patch("gst.resilience.retry.time.sleep") as sleep:
            retry_with_backoff(func, RetryConfig.fixed(3, 0.5), (ConnectionError,))
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 0.5]

    def test_default_config_values(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.initial_delay_seconds == 1.0
        assert config.max_delay_seconds == 60.0
        assert config.exponential_base == 2.0
        assert config.jitter is True


class TestAsyncRetry:
    """Tests for the coroutine variant."""

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        func = AsyncMock(side_effect=[ConnectionError(), ConnectionError(), "ok"])
        with patch("gst.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await async_retry_with_backoff(
                func, RetryConfig.fixed(3, 1.0), (ConnectionError,)
            )
        assert result == "ok"
        assert func.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self):
        """Client errors are never retried even under a broad retryable type."""
        func = AsyncMock(side_effect=ValidationError("bad order", field="id"))
        with pytest.raises(ValidationError):
            await async_retry_with_backoff(
                func,
                RetryConfig.fixed(3, 0),
                (Exception,),
                non_retryable=(ValidationError,),
            )
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_logs_retry_attempts(self, caplog):
        func = AsyncMock(side_effect=[TimeoutError("slow"), "ok"])
        await async_retry_with_backoff(func, RetryConfig.fixed(2, 0), (TimeoutError,))
        assert any("Retrying" in record.message for record in caplog.records)
