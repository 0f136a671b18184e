"""Rolling health metrics for inbound event processing.

Metrics live in a bounded ring buffer; once ``capacity`` is reached the
oldest entry is evicted. A scope is a shop domain, ``None`` means all shops.
"""

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable

from gst.core.config import (
    HEALTH_ERROR_THRESHOLD_PCT,
    HEALTH_FRESHNESS_HOURS,
    METRICS_CAPACITY,
    RECENT_FAILURES_LIMIT,
    REPORT_FAILURES_LIMIT,
)
from gst.core.dates import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventMetric:
    timestamp: datetime
    source_id: str
    topic: str
    success: bool
    processing_time_ms: float
    error: str | None = None
    retry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class HealthStatus:
    total: int = 0
    successful: int = 0
    failed: int = 0
    avg_processing_time_ms: int = 0
    error_rate_pct: float = 0.0
    last_processed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_processed_at"] = (
            self.last_processed_at.isoformat() if self.last_processed_at else None
        )
        return data


def _rollup(metrics: list[EventMetric]) -> HealthStatus:
    if not metrics:
        return HealthStatus()
    successful = sum(1 for m in metrics if m.success)
    failed = len(metrics) - successful
    average = sum(m.processing_time_ms for m in metrics) / len(metrics)
    return HealthStatus(
        total=len(metrics),
        successful=successful,
        failed=failed,
        avg_processing_time_ms=int(round(average)),
        error_rate_pct=round(failed / len(metrics) * 100, 2),
        last_processed_at=metrics[-1].timestamp,
    )


class EventMonitor:
    """Bounded in-process store of ``EventMetric`` entries.

    Args:
        capacity: Maximum number of retained metrics
        freshness_hours: Age of the last metric after which a non-empty
            scope is considered stale and therefore unhealthy
        clock: Time source
    """

    def __init__(
        self,
        capacity: int = METRICS_CAPACITY,
        freshness_hours: float = HEALTH_FRESHNESS_HOURS,
        clock: Clock = utc_now,
    ):
        self._metrics: deque[EventMetric] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self.freshness = timedelta(hours=freshness_hours)
        self.clock = clock

    def record(self, metric: EventMetric) -> None:
        with self._lock:
            self._metrics.append(metric)

        if metric.success:
            logger.info(
                "Event processed successfully",
                extra={
                    "shop": metric.source_id,
                    "topic": metric.topic,
                    "duration_ms": round(metric.processing_time_ms, 2),
                    "retry_attempt": metric.retry_count,
                },
            )
        else:
            logger.error(
                f"Event processing failed: {metric.error}",
                extra={
                    "shop": metric.source_id,
                    "topic": metric.topic,
                    "duration_ms": round(metric.processing_time_ms, 2),
                    "retry_attempt": metric.retry_count,
                },
            )

    def _scoped(self, scope: str | None) -> list[EventMetric]:
        with self._lock:
            metrics = list(self._metrics)
        if scope is None:
            return metrics
        return [m for m in metrics if m.source_id == scope]

    def health_status(self, scope: str | None = None) -> HealthStatus:
        return _rollup(self._scoped(scope))

    def is_healthy(
        self, scope: str | None = None, threshold: float = HEALTH_ERROR_THRESHOLD_PCT
    ) -> bool:
        """True when the error rate is below ``threshold`` and activity is fresh.

        An empty scope is healthy.
        """
        status = self.health_status(scope)
        if status.error_rate_pct >= threshold:
            return False
        if status.total == 0:
            return True
        return self.clock() - status.last_processed_at < self.freshness

    def recent_failures(
        self, scope: str | None = None, limit: int = RECENT_FAILURES_LIMIT
    ) -> list[EventMetric]:
        failures = [m for m in self._scoped(scope) if not m.success]
        failures.sort(key=lambda m: m.timestamp, reverse=True)
        return failures[:limit]

    def stats_by_topic(self, scope: str | None = None) -> dict[str, HealthStatus]:
        grouped: dict[str, list[EventMetric]] = {}
        for metric in self._scoped(scope):
            grouped.setdefault(metric.topic, []).append(metric)
        return {topic: _rollup(metrics) for topic, metrics in grouped.items()}

    def health_report(self, scope: str | None = None) -> str:
        """Plain-text summary for operators."""
        status = self.health_status(scope)
        healthy = self.is_healthy(scope)
        title = f"for {scope}" if scope else "(All Shops)"
        last = status.last_processed_at.isoformat() if status.last_processed_at else "Never"

        lines = [
            f"=== Webhook Health Report {title} ===",
            f"Status: {'HEALTHY' if healthy else 'UNHEALTHY'}",
            f"Total Webhooks: {status.total}",
            f"Success Rate: {_percent(100 - status.error_rate_pct)}%",
            f"Average Processing Time: {status.avg_processing_time_ms}ms",
            f"Last Processed: {last}",
            "",
            "=== Stats by Topic ===",
        ]
        for topic, stats in self.stats_by_topic(scope).items():
            lines.append(
                f"{topic}: {stats.successful}/{stats.total} success "
                f"({_percent(100 - stats.error_rate_pct)}%)"
            )
        lines.append("")

        failures = self.recent_failures(scope, REPORT_FAILURES_LIMIT)
        if failures:
            lines.append("=== Recent Failures ===")
            lines.extend(_failure_lines(failures))

        return "\n".join(lines)

    def clear(self) -> None:
        with self._lock:
            self._metrics.clear()
        logger.info("Event metrics cleared")

    def all_metrics(self) -> list[EventMetric]:
        with self._lock:
            return list(self._metrics)


def _percent(value: float) -> str:
    value = round(value, 2)
    return str(int(value)) if value == int(value) else f"{value:g}"


def _failure_lines(failures: Iterable[EventMetric]) -> list[str]:
    return [f"{m.timestamp.isoformat()} - {m.topic}: {m.error}" for m in failures]
