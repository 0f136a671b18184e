"""Structured logging configuration for production observability.

Log records are emitted as JSON lines so that job, shop and webhook context
can be filtered in the log aggregation system. Context is attached through
the standard ``extra={...}`` argument of logger calls.
"""

import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "trace_id",
    "job_id",
    "shop",
    "topic",
    "order_id",
    "artifact_key",
    "error_code",
    "service",
    "duration_ms",
    "http_status",
    "retry_attempt",
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs logs as JSON with standard fields plus the known context keys
    provided via the 'extra' parameter in logger calls.

    Example:
        >>> logger.info("Job completed", extra={"job_id": "bulk_1", "shop": "a***"})
        # Output: {"timestamp": "2025-12-05T17:52:00Z", "level": "INFO",
        #          "message": "Job completed", "job_id": "bulk_1", "shop": "a***"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .replace(tzinfo=None)
            .isoformat()
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.process:
            log_data["process_id"] = record.process

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


def configure_structured_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatter (True) or plain text (False)
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler()

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    # Suppress noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("pypdf").setLevel(logging.ERROR)
