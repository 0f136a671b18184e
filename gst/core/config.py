from decimal import Decimal

# =============================================================================
# Tax Configuration
# =============================================================================

GST_LOW_RATE = Decimal("0.05")  # Applied below the threshold
GST_HIGH_RATE = Decimal("0.12")  # Applied at or above the threshold
GST_RATE_THRESHOLD = Decimal("1000")  # INR, inclusive on the high side
MONEY_QUANTUM = Decimal("0.01")

DEFAULT_STORE_JURISDICTION = "MH"
DEFAULT_HSN_CODE = "61091000"  # Cotton T-shirts, knitted
DEFAULT_CURRENCY = "INR"

UNRESOLVED_JURISDICTION = "UNRESOLVED"  # Summary bucket for fallback orders


# =============================================================================
# Bulk Job Limits
# =============================================================================

MAX_BULK_ITEMS = 100  # Job submission path
MAX_EXPORT_ITEMS = 1000  # Direct CSV export by id list (POST)
MAX_EXPORT_QUERY_ITEMS = 100  # Direct CSV export by id list (GET query)
MAX_EXPORT_RANGE_DAYS = 365
LARGE_EXPORT_WARNING_ROWS = 10000

JOB_BATCH_SIZE = 10
JOB_BATCH_DELAY_SECONDS = 0.1  # Backpressure between batches
MAX_CONCURRENT_JOBS = 3
JOB_ID_PREFIX = "bulk_"


# =============================================================================
# Artifact Storage
# =============================================================================

ARTIFACT_TTL_HOURS = 24
BULK_ARTIFACT_TTL_HOURS = 72  # Jobs above LARGE_JOB_THRESHOLD items
LARGE_JOB_THRESHOLD = 50
JOB_RETENTION_HOURS = 24
SWEEP_INTERVAL_SECONDS = 3600
ARTIFACT_KEY_BYTES = 24  # secrets.token_urlsafe entropy

CONTENT_TYPE_PDF = "application/pdf"
CONTENT_TYPE_CSV = "text/csv; charset=utf-8"


# =============================================================================
# Webhooks & Monitoring
# =============================================================================

WEBHOOK_MAX_ATTEMPTS = 3
WEBHOOK_RETRY_DELAY_SECONDS = 1.0  # Fixed delay between attempts
METRICS_CAPACITY = 1000  # Ring buffer size
HEALTH_ERROR_THRESHOLD_PCT = 10.0
HEALTH_FRESHNESS_HOURS = 24
RECENT_FAILURES_LIMIT = 10
REPORT_FAILURES_LIMIT = 5

TOPIC_ORDERS_CREATE = "orders/create"
TOPIC_ORDERS_UPDATED = "orders/updated"
TOPIC_ORDERS_PAID = "orders/paid"
TOPIC_APP_UNINSTALLED = "app/uninstalled"

HEADER_TOPIC = "x-shopify-topic"
HEADER_SHOP_DOMAIN = "x-shopify-shop-domain"
HEADER_HMAC = "x-shopify-hmac-sha256"


# =============================================================================
# External Service Timeouts (seconds)
# =============================================================================

COMMERCE_TIMEOUT_SECONDS = 30
COMMERCE_PAGE_SIZE = 250  # Max orders per REST page
RENDER_TIMEOUT_SECONDS = 60
