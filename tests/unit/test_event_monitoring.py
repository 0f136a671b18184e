"""Unit tests for the event health aggregator."""

from datetime import timedelta

import pytest

from gst.events.monitoring import EventMetric, EventMonitor

SHOP_A = "a.myshopify.com"
SHOP_B = "b.myshopify.com"


def _metric(clock, shop=SHOP_A, topic="orders/create", success=True, ms=10.0, error=None):
    return EventMetric(
        timestamp=clock(),
        source_id=shop,
        topic=topic,
        success=success,
        processing_time_ms=ms,
        error=error,
    )


@pytest.fixture
def monitor(clock):
    return EventMonitor(capacity=100, freshness_hours=24, clock=clock)


class TestHealthStatus:
    def test_empty_scope(self, monitor):
        status = monitor.health_status()
        assert status.total == 0
        assert status.error_rate_pct == 0
        assert status.last_processed_at is None
        assert monitor.is_healthy()

    def test_rollup(self, monitor, clock):
        monitor.record(_metric(clock, ms=10))
        monitor.record(_metric(clock, ms=15))
        monitor.record(_metric(clock, success=False, ms=20, error="boom"))

        status = monitor.health_status()
        assert status.total == 3
        assert status.failed == 1
        assert status.avg_processing_time_ms == 15
        assert status.error_rate_pct == 33.33

    def test_scoped_by_shop(self, monitor, clock):
        monitor.record(_metric(clock, shop=SHOP_A))
        monitor.record(_metric(clock, shop=SHOP_B, success=False, error="x"))

        assert monitor.health_status(SHOP_A).total == 1
        assert monitor.is_healthy(SHOP_A)
        assert not monitor.is_healthy(SHOP_B)


class TestIsHealthy:
    def test_error_rate_threshold(self, monitor, clock):
        for _ in range(9):
            monitor.record(_metric(clock))
        monitor.record(_metric(clock, success=False, error="x"))

        # 10% is not below a 10% threshold
        assert not monitor.is_healthy(threshold=10.0)
        assert monitor.is_healthy(threshold=10.01)

    def test_stale_activity_is_unhealthy(self, monitor, clock):
        monitor.record(_metric(clock))
        clock.advance(hours=25)
        assert not monitor.is_healthy()


class TestMonitorContents:
    def test_capacity_evicts_oldest(self, clock):
        monitor = EventMonitor(capacity=3, clock=clock)
        for index in range(5):
            monitor.record(_metric(clock, topic=f"t{index}"))
        assert [m.topic for m in monitor.all_metrics()] == ["t2", "t3", "t4"]

    def test_recent_failures_newest_first(self, monitor, clock):
        for index in range(12):
            monitor.record(_metric(clock, success=False, error=f"e{index}"))
            clock.advance(minutes=1)

        failures = monitor.recent_failures()
        assert len(failures) == 10
        assert failures[0].error == "e11"

    def test_stats_by_topic(self, monitor, clock):
        monitor.record(_metric(clock, topic="orders/create"))
        monitor.record(_metric(clock, topic="orders/paid", success=False, error="x"))
        stats = monitor.stats_by_topic()
        assert stats["orders/create"].successful == 1
        assert stats["orders/paid"].failed == 1

    def test_clear(self, monitor, clock):
        monitor.record(_metric(clock))
        monitor.clear()
        assert monitor.all_metrics() == []


class TestHealthReport:
    def test_report_format(self, monitor, clock):
        monitor.record(_metric(clock, topic="orders/create"))
        monitor.record(
            _metric(clock, topic="orders/paid", success=False, error="timeout")
        )

        report = monitor.health_report()
        lines = report.splitlines()
        assert lines[0] == "=== Webhook Health Report (All Shops) ==="
        assert lines[1] == "Status: UNHEALTHY"
        assert "Total Webhooks: 2" in lines
        assert "Success Rate: 50%" in lines
        assert "orders/create: 1/1 success (100%)" in lines
        assert "=== Recent Failures ===" in lines
        assert lines[-1].endswith("orders/paid: timeout")

    def test_report_for_quiet_shop(self, monitor):
        report = monitor.health_report(SHOP_A)
        assert report.startswith(f"=== Webhook Health Report for {SHOP_A} ===")
        assert "Status: HEALTHY" in report
        assert "Last Processed: Never" in report
        assert "Recent Failures" not in report

    def test_metric_to_dict(self, clock):
        data = _metric(clock).to_dict()
        assert data["timestamp"] == clock().isoformat()
        assert data["retry_count"] == 0
