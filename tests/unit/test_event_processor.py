"""Unit tests for retrying event processing and topic dispatch."""

from unittest.mock import AsyncMock, Mock

import pytest

from gst.core.exceptions import AuthenticationError, ValidationError
from gst.events.monitoring import EventMonitor
from gst.events.processor import EventProcessor
from gst.events.verification import WebhookValidation

SHOP = "demo-store.myshopify.com"


@pytest.fixture
def monitor(clock):
    return EventMonitor(clock=clock)


@pytest.fixture
def handlers():
    return Mock()


@pytest.fixture
def processor(monitor, handlers, clock):
    return EventProcessor(monitor, handlers, max_attempts=3, delay_seconds=0, clock=clock)


class TestProcessWithRetry:
    """One metric per delivery, describing the final outcome."""

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self, processor, monitor):
        operation = AsyncMock(side_effect=[RuntimeError("db down"), RuntimeError("db down"), "done"])

        result = await processor.process_with_retry(
            operation, source_id=SHOP, topic="orders/create"
        )

        assert result == "done"
        assert operation.await_count == 3
        metrics = monitor.all_metrics()
        assert len(metrics) == 1
        assert metrics[0].success is True
        assert metrics[0].retry_count == 2
        assert metrics[0].error is None

    @pytest.mark.asyncio
    async def test_exhausted_attempts_record_one_failure(self, processor, monitor):
        operation = AsyncMock(side_effect=RuntimeError("still down"))

        with pytest.raises(RuntimeError):
            await processor.process_with_retry(
                operation, source_id=SHOP, topic="orders/paid"
            )

        assert operation.await_count == 3
        metrics = monitor.all_metrics()
        assert len(metrics) == 1
        assert metrics[0].success is False
        assert metrics[0].retry_count == 2
        assert metrics[0].error == "still down"

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, processor, monitor):
        operation = AsyncMock(side_effect=ValidationError("bad payload", field="id"))

        with pytest.raises(ValidationError):
            await processor.process_with_retry(
                operation, source_id=SHOP, topic="orders/create"
            )

        assert operation.await_count == 1
        assert monitor.all_metrics()[0].retry_count == 0

    @pytest.mark.asyncio
    async def test_per_call_attempt_override(self, processor):
        operation = AsyncMock(side_effect=RuntimeError("x"))
        with pytest.raises(RuntimeError):
            await processor.process_with_retry(
                operation, source_id=SHOP, topic="t", max_attempts=5
            )
        assert operation.await_count == 5


class TestDispatch:
    @pytest.mark.asyncio
    async def test_invalid_delivery_invokes_nothing(self, processor, handlers, monitor):
        with pytest.raises(AuthenticationError):
            await processor.dispatch(
                WebhookValidation(is_valid=False, reason="Webhook signature mismatch")
            )

        handlers.resolve.assert_not_called()
        assert monitor.all_metrics() == []

    @pytest.mark.asyncio
    async def test_routes_to_topic_handler(self, processor, handlers, monitor):
        handler = AsyncMock(return_value=None)
        handlers.resolve.return_value = handler

        await processor.dispatch(
            WebhookValidation(
                is_valid=True, shop=SHOP, topic="orders/paid", payload={"id": 1}
            )
        )

        handlers.resolve.assert_called_once_with("orders/paid")
        handler.assert_awaited_once_with(SHOP, {"id": 1})
        assert monitor.all_metrics()[0].topic == "orders/paid"
