"""Application startup validation checks.

Validates critical settings and configuration before application starts.
Settings classes define data, this module validates behavior.
"""

import logging
import re

logger = logging.getLogger(__name__)


def validate_all_settings() -> None:
    """Validate all critical settings at application startup.

    This ensures the application fails fast if environment is misconfigured,
    rather than crashing on first request.

    Raises:
        RuntimeError: If any critical setting is missing or invalid
    """
    from core.settings import (
        commerce_settings,
        db_settings,
        job_settings,
        storage_settings,
        tax_settings,
        webhook_settings,
    )

    critical_checks = [
        (
            webhook_settings.WEBHOOK_SECRET.get_secret_value(),
            "WEBHOOK_SECRET",
            "Webhook verification",
        ),
        (tax_settings.STORE_JURISDICTION, "STORE_JURISDICTION", "GST calculation"),
    ]

    if storage_settings.ARTIFACT_BACKEND == "minio":
        critical_checks += [
            (storage_settings.S3_ENDPOINT, "S3_ENDPOINT", "S3/MinIO storage"),
            (storage_settings.S3_BUCKET, "S3_BUCKET", "S3/MinIO storage"),
            (storage_settings.S3_ACCESS_KEY, "S3_ACCESS_KEY", "S3/MinIO storage"),
            (
                storage_settings.S3_SECRET_KEY.get_secret_value(),
                "S3_SECRET_KEY",
                "S3/MinIO storage",
            ),
        ]

    if job_settings.JOB_STORE == "postgres":
        critical_checks += [
            (db_settings.DB_HOST, "DB_HOST", "Job store"),
            (db_settings.DB_NAME, "DB_NAME", "Job store"),
            (db_settings.DB_USER, "DB_USER", "Job store"),
            (db_settings.DB_PASSWORD.get_secret_value(), "DB_PASSWORD", "Job store"),
        ]

    missing = []
    for value, name, purpose in critical_checks:
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(f"  - {name} (required for {purpose})")

    if missing:
        error_msg = (
            "Missing critical environment variables:\n"
            + "\n".join(missing)
            + "\n\nPlease check your .env file or environment configuration."
        )
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if storage_settings.ARTIFACT_BACKEND not in ("memory", "minio"):
        raise RuntimeError(
            f"ARTIFACT_BACKEND must be 'memory' or 'minio', got {storage_settings.ARTIFACT_BACKEND}"
        )
    if job_settings.JOB_STORE not in ("memory", "postgres"):
        raise RuntimeError(
            f"JOB_STORE must be 'memory' or 'postgres', got {job_settings.JOB_STORE}"
        )

    url_pattern = re.compile(r"^https?://.+")
    if not url_pattern.match(commerce_settings.RENDER_SERVICE_URL):
        error_msg = (
            "Invalid URL formats:\n"
            f"  - RENDER_SERVICE_URL={commerce_settings.RENDER_SERVICE_URL} "
            "(must start with http:// or https://)"
        )
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if tax_settings.GST_LOW_RATE > tax_settings.GST_HIGH_RATE:
        raise RuntimeError(
            f"GST_LOW_RATE ({tax_settings.GST_LOW_RATE}) "
            f"cannot exceed GST_HIGH_RATE ({tax_settings.GST_HIGH_RATE})"
        )

    for name in ("MAX_CONCURRENT_JOBS", "JOB_BATCH_SIZE", "MAX_BULK_ITEMS"):
        if getattr(job_settings, name) < 1:
            raise RuntimeError(f"{name} must be positive")

    if not (1 <= db_settings.DB_PORT <= 65535):
        raise RuntimeError(f"DB_PORT must be 1-65535, got {db_settings.DB_PORT}")

    logger.info("All critical settings validated successfully")
    logger.info(
        f"  - Artifacts: {storage_settings.ARTIFACT_BACKEND}, jobs: {job_settings.JOB_STORE}"
    )
    logger.info(f"  - Seller jurisdiction: {tax_settings.STORE_JURISDICTION}")
    logger.info(f"  - Render service: {commerce_settings.RENDER_SERVICE_URL}")
