"""Retrying execution of inbound event handlers.

Each delivery records exactly one ``EventMetric`` describing its final
outcome; ``retry_count`` is the number of attempts beyond the first.
Client errors (bad payloads) are not retried.
"""

import logging
import time
from typing import Any, Awaitable, Callable

from gst.core.config import WEBHOOK_MAX_ATTEMPTS, WEBHOOK_RETRY_DELAY_SECONDS
from gst.core.dates import Clock, utc_now
from gst.core.exceptions import AuthenticationError, ClientError
from gst.events.handlers import EventHandlers
from gst.events.monitoring import EventMetric, EventMonitor
from gst.events.verification import WebhookValidation
from gst.observability import metrics
from gst.resilience.retry import RetryConfig, async_retry_with_backoff

logger = logging.getLogger(__name__)


class EventProcessor:
    def __init__(
        self,
        monitor: EventMonitor,
        handlers: EventHandlers,
        max_attempts: int = WEBHOOK_MAX_ATTEMPTS,
        delay_seconds: float = WEBHOOK_RETRY_DELAY_SECONDS,
        clock: Clock = utc_now,
    ):
        self.monitor = monitor
        self.handlers = handlers
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.clock = clock

    async def process_with_retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        *,
        source_id: str,
        topic: str,
        max_attempts: int | None = None,
        delay_seconds: float | None = None,
    ) -> Any:
        """Run ``operation`` with a fixed delay between attempts.

        Args:
            operation: Zero-argument coroutine function
            source_id: Shop domain the event belongs to
            topic: Event topic
            max_attempts: Total attempts, defaults to the processor setting
            delay_seconds: Delay between attempts, defaults to the processor setting

        Returns:
            Whatever ``operation`` returned on its successful attempt

        Raises:
            Exception: The last error once attempts are exhausted
        """
        config = RetryConfig.fixed(
            max_attempts or self.max_attempts,
            self.delay_seconds if delay_seconds is None else delay_seconds,
        )
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await operation()

        started = time.perf_counter()
        try:
            result = await async_retry_with_backoff(
                attempt, config, (Exception,), non_retryable=(ClientError,)
            )
        except Exception as e:
            self._record(source_id, topic, started, attempts, error=e)
            raise
        self._record(source_id, topic, started, attempts)
        return result

    async def dispatch(self, validation: WebhookValidation) -> Any:
        """Route a verified event to its topic handler.

        Raises:
            AuthenticationError: If the event did not pass verification
        """
        if not validation.is_valid:
            raise AuthenticationError(validation.reason or "Invalid webhook")

        handler = self.handlers.resolve(validation.topic)
        return await self.process_with_retry(
            lambda: handler(validation.shop, validation.payload),
            source_id=validation.shop,
            topic=validation.topic,
        )

    def _record(
        self,
        source_id: str,
        topic: str,
        started: float,
        attempts: int,
        error: Exception | None = None,
    ) -> None:
        success = error is None
        self.monitor.record(
            EventMetric(
                timestamp=self.clock(),
                source_id=source_id,
                topic=topic,
                success=success,
                processing_time_ms=(time.perf_counter() - started) * 1000,
                error=str(error) if error is not None else None,
                retry_count=max(attempts - 1, 0),
            )
        )
        metrics.inc_webhook_delivery(topic, success)
