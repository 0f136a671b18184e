"""
Centralized application settings using Pydantic.

All environment variables are read once at startup and validated.
Use this instead of scattered os.getenv() calls throughout the codebase.
"""

from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """General application settings."""

    APP_NAME: str = "gst-order-documents"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ROOT_PATH: str = ""

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class TaxSettings(BaseSettings):
    """GST rate schedule and seller defaults."""

    GST_LOW_RATE: Decimal = Decimal("0.05")
    GST_HIGH_RATE: Decimal = Decimal("0.12")
    GST_RATE_THRESHOLD: Decimal = Decimal("1000")
    STORE_JURISDICTION: str = "MH"
    DEFAULT_HSN_CODE: str = "61091000"

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class JobSettings(BaseSettings):
    """Bulk job limits, batching and artifact lifetimes."""

    JOB_STORE: str = "memory"
    MAX_CONCURRENT_JOBS: int = 3
    JOB_BATCH_SIZE: int = 10
    JOB_BATCH_DELAY_SECONDS: float = 0.1
    MAX_BULK_ITEMS: int = 100
    MAX_EXPORT_ITEMS: int = 1000
    MAX_EXPORT_QUERY_ITEMS: int = 100
    MAX_EXPORT_RANGE_DAYS: int = 365
    ARTIFACT_TTL_HOURS: int = 24
    BULK_ARTIFACT_TTL_HOURS: int = 72
    LARGE_JOB_THRESHOLD: int = 50
    JOB_RETENTION_HOURS: int = 24
    SWEEP_INTERVAL_SECONDS: float = 3600

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class StorageSettings(BaseSettings):
    """Artifact backend selection and S3/MinIO configuration."""

    ARTIFACT_BACKEND: str = "memory"
    S3_ENDPOINT: str = ""
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: SecretStr = SecretStr("")
    S3_BUCKET: str = ""
    S3_SECURE: bool = True

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class DatabaseSettings(BaseSettings):
    """Database connection and pool configuration (JOB_STORE=postgres)."""

    DB_HOST: str = ""
    DB_PORT: int = 5432
    DB_NAME: str = ""
    DB_USER: str = ""
    DB_PASSWORD: SecretStr = SecretStr("")
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 10.0
    DB_COMMAND_TIMEOUT: float = 10.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class WebhookSettings(BaseSettings):
    """Inbound webhook verification, retry and monitoring configuration."""

    WEBHOOK_SECRET: SecretStr = SecretStr("")
    WEBHOOK_MAX_ATTEMPTS: int = 3
    WEBHOOK_RETRY_DELAY_SECONDS: float = 1.0
    METRICS_CAPACITY: int = 1000
    HEALTH_ERROR_THRESHOLD_PCT: float = 10.0
    HEALTH_FRESHNESS_HOURS: int = 24

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class CommerceSettings(BaseSettings):
    """Commerce platform API and render service configuration."""

    COMMERCE_API_VERSION: str = "2024-01"
    COMMERCE_SHOP_DOMAIN: str = ""
    COMMERCE_ACCESS_TOKEN: SecretStr = SecretStr("")
    COMMERCE_TIMEOUT_SECONDS: float = 30.0
    COMMERCE_PAGE_SIZE: int = 250
    RENDER_SERVICE_URL: str = "http://localhost:3000"
    RENDER_TIMEOUT_SECONDS: float = 60.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


# Singleton instances - loaded once at module import
app_settings = AppSettings()
tax_settings = TaxSettings()
job_settings = JobSettings()
storage_settings = StorageSettings()
db_settings = DatabaseSettings()
webhook_settings = WebhookSettings()
commerce_settings = CommerceSettings()
