"""Prometheus counters for jobs and webhook deliveries."""

from prometheus_client import Counter, Histogram

jobs_submitted_total = Counter(
    "gst_jobs_submitted_total", "Bulk jobs submitted", labelnames=("format",)
)
jobs_completed_total = Counter(
    "gst_jobs_completed_total", "Bulk jobs completed successfully", labelnames=("format",)
)
jobs_failed_total = Counter("gst_jobs_failed_total", "Bulk jobs failed")
jobs_cancelled_total = Counter("gst_jobs_cancelled_total", "Bulk jobs cancelled")
job_duration_seconds = Histogram(
    "gst_job_duration_seconds",
    "Bulk job duration in seconds",
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)
webhook_deliveries_total = Counter(
    "gst_webhook_deliveries_total",
    "Webhook deliveries by topic and final outcome",
    labelnames=("topic", "outcome"),
)
artifacts_swept_total = Counter(
    "gst_artifacts_swept_total", "Expired artifacts removed by the sweeper"
)


def inc_job_submitted(output_format: str) -> None:
    jobs_submitted_total.labels(format=output_format).inc()


def inc_job_completed(output_format: str, seconds: float) -> None:
    jobs_completed_total.labels(format=output_format).inc()
    job_duration_seconds.observe(seconds)


def inc_job_failed() -> None:
    jobs_failed_total.inc()


def inc_job_cancelled() -> None:
    jobs_cancelled_total.inc()


def inc_webhook_delivery(topic: str, success: bool) -> None:
    webhook_deliveries_total.labels(
        topic=topic, outcome="success" if success else "failure"
    ).inc()


def inc_artifacts_swept(count: int) -> None:
    if count:
        artifacts_swept_total.inc(count)
