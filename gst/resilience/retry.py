"""Retry logic with backoff and optional jitter.

Provides resilient retry mechanisms for handling transient failures in
external service calls. ``exponential_base=1.0`` with ``jitter=False`` gives a
fixed delay between attempts.

Example:
    >>> from gst.resilience.retry import async_retry_with_backoff, RetryConfig
    >>> config = RetryConfig(max_attempts=3, initial_delay_seconds=1.0)
    >>> orders = await async_retry_with_backoff(
    ...     client.fetch_page,
    ...     config,
    ...     (httpx.TimeoutException, httpx.HTTPStatusError),
    ...     page_info=None,
    ... )
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry logic.

    Attributes:
        max_attempts: Maximum number of attempts (including initial)
        initial_delay_seconds: Initial delay before first retry
        max_delay_seconds: Maximum delay between retries
        exponential_base: Base for exponential backoff (delay *= base ** attempt)
        jitter: Whether to add random jitter to delays
    """

    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True

    @classmethod
    def fixed(cls, max_attempts: int, delay_seconds: float) -> "RetryConfig":
        return cls(
            max_attempts=max_attempts,
            initial_delay_seconds=delay_seconds,
            max_delay_seconds=delay_seconds,
            exponential_base=1.0,
            jitter=False,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the zero-based ``attempt`` failed."""
        delay = min(
            self.initial_delay_seconds * (self.exponential_base**attempt),
            self.max_delay_seconds,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


def retry_with_backoff(
    func: Callable[..., Any],
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[BaseException], ...],
    *args,
    **kwargs,
) -> Any:
    """Retry a blocking function with backoff.

    Args:
        func: Function to execute
        config: Retry configuration
        retryable_exceptions: Tuple of exception types that trigger retry
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result from successful function call

    Raises:
        Last exception if all retry attempts fail
    """
    for attempt in range(config.max_attempts):
        try:
            return func(*args, **kwargs)
        except retryable_exceptions as e:
            if attempt == config.max_attempts - 1:
                logger.error(
                    f"All {config.max_attempts} retry attempts failed",
                    extra={"retry_attempt": attempt + 1},
                    exc_info=True,
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed: {type(e).__name__}: {e}. "
                f"Retrying in {delay:.2f}s...",
                extra={"retry_attempt": attempt + 1},
            )
            time.sleep(delay)


async def async_retry_with_backoff(
    func: Callable[..., Awaitable[Any]],
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[BaseException], ...],
    *args,
    non_retryable: Tuple[Type[BaseException], ...] = (),
    **kwargs,
) -> Any:
    """Await ``func`` until it succeeds or attempts run out.

    Exceptions listed in ``non_retryable`` propagate on the first occurrence
    even when they are subclasses of a retryable type.

    Raises:
        The last exception if all retry attempts fail
    """
    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except non_retryable:
            raise
        except retryable_exceptions as e:
            if attempt == config.max_attempts - 1:
                logger.error(
                    f"All {config.max_attempts} retry attempts failed",
                    extra={"retry_attempt": attempt + 1},
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed: {type(e).__name__}: {e}. "
                f"Retrying in {delay:.2f}s...",
                extra={"retry_attempt": attempt + 1},
            )
            await asyncio.sleep(delay)
