"""Pydantic request/response schemas for API endpoints."""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gst.core.config import MAX_BULK_ITEMS, MAX_EXPORT_ITEMS
from gst.documents.templates import BusinessInfo, DocumentTemplate, TemplateLayout
from gst.models.jobs import BulkJob, JobOptions, OutputFormat


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    This standardized error format provides structured, machine-readable
    error information for HTTP API responses. ``error`` repeats the
    human-readable message and ``details`` carries structured context.

    See: https://www.rfc-editor.org/rfc/rfc7807
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "/errors/INVALID_JOB_STATE",
                "title": "Cannot cancel job with status: completed",
                "status": 400,
                "instance": "/v1/jobs/bulk_1718000000000_ab12cd34/cancel",
                "code": "INVALID_JOB_STATE",
                "category": "client_error",
                "retryable": False,
                "trace_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                "error": "Cannot cancel job with status: completed",
                "details": {"action": "cancel", "status": "completed"},
            }
        }
    )

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary of the problem")
    status: int = Field(..., description="HTTP status code for this problem")
    detail: Optional[str] = Field(
        None, description="Human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None,
        description="URI reference identifying this specific occurrence (e.g., request path)",
    )

    # Extension members (allowed by RFC 7807)
    code: str = Field(..., description="Application-specific error code")
    category: str = Field(
        ..., description="Error category (client_error, server_error, etc.)"
    )
    retryable: bool = Field(
        default=False, description="Whether the request can be retried"
    )
    trace_id: Optional[str] = Field(
        None, description="Distributed tracing ID for correlation across services"
    )
    error: Optional[str] = Field(None, description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(
        None, description="Structured error context"
    )


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class JobSubmitRequest(BaseModel):
    """Bulk document job submission."""

    model_config = ConfigDict(populate_by_name=True)

    order_ids: list[str] = Field(
        ...,
        alias="orderIds",
        description=f"Order ids to include (at most {MAX_BULK_ITEMS})",
    )
    format: OutputFormat = Field("pdf", description="Output format: pdf or csv")
    template_id: Optional[str] = Field(None, alias="templateId")
    include_tax_breakdown: bool = Field(True, alias="includeTaxBreakdown")
    group_by_date: bool = Field(False, alias="groupByDate")

    @field_validator("order_ids", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    def options(self) -> JobOptions:
        return JobOptions(
            output_format=self.format,
            template_id=self.template_id,
            include_tax_breakdown=self.include_tax_breakdown,
            group_by_date=self.group_by_date,
        )


class JobSubmitResponse(BaseModel):
    success: bool = True
    job: BulkJob
    message: str


class JobListResponse(BaseModel):
    jobs: list[BulkJob]
    count: int


class JobCancelResponse(BaseModel):
    success: bool = True
    job: BulkJob
    message: str = "Job cancelled"


class JobDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Job deleted"


class QueueStatusResponse(BaseModel):
    processing: int
    queued: int
    max_concurrent: int
    available_slots: int


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


class DateRange(BaseModel):
    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days


class CsvExportRequest(BaseModel):
    """Direct CSV export by explicit order ids or by creation date range."""

    model_config = ConfigDict(populate_by_name=True)

    order_ids: Optional[list[str]] = Field(None, alias="orderIds")
    date_range: Optional[DateRange] = Field(None, alias="dateRange")
    export_type: Literal["detailed", "summary"] = Field("detailed", alias="exportType")
    group_by: Literal["date", "customer", "product"] = Field("date", alias="groupBy")
    include_tax_breakdown: bool = Field(True, alias="includeTaxBreakdown")
    group_by_date: bool = Field(False, alias="groupByDate")
    seller_jurisdiction: Optional[str] = Field(
        None,
        alias="sellerJurisdiction",
        min_length=2,
        max_length=5,
        description="Overrides the store state code for this export",
    )

    @field_validator("order_ids", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    @model_validator(mode="after")
    def require_selection(self) -> "CsvExportRequest":
        if not self.order_ids and self.date_range is None:
            raise ValueError(
                f"Either orderIds (at most {MAX_EXPORT_ITEMS}) or dateRange is required"
            )
        return self


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class TaxBreakdownResponse(BaseModel):
    tax_type: str
    rate: str
    rate_percent: str
    taxable_amount: str
    total_tax_amount: str
    cgst_amount: Optional[str] = None
    sgst_amount: Optional[str] = None
    igst_amount: Optional[str] = None
    classification_code: str
    total_amount: str


class LineTaxResponse(BaseModel):
    line_item_id: str
    title: str
    quantity: int
    taxable_amount: str
    classification_code: str
    tax: TaxBreakdownResponse
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None


class OrderTaxResponse(BaseModel):
    order_id: str
    order_number: str
    buyer_jurisdiction: Optional[str]
    seller_jurisdiction: str
    tax: TaxBreakdownResponse
    line_items: list[LineTaxResponse]
    tax_exempt: bool


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TemplateCreateRequest(BaseModel):
    """Invoice template submission; the id is assigned on creation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    layout: TemplateLayout
    business_info: BusinessInfo = Field(..., alias="businessInfo")
    show_tax_breakdown: bool = Field(True, alias="showTaxBreakdown")
    show_classification_codes: bool = Field(True, alias="showClassificationCodes")
    show_bank_details: bool = Field(False, alias="showBankDetails")
    show_logo: bool = Field(True, alias="showLogo")
    max_items_per_page: int = Field(20, ge=1, le=200, alias="maxItemsPerPage")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Template name must not be blank")
        return value

    @model_validator(mode="after")
    def require_business_identity(self) -> "TemplateCreateRequest":
        if not self.business_info.company_name.strip() or not self.business_info.gstin:
            raise ValueError("Company name and GSTIN are required")
        return self

    def to_template(self) -> DocumentTemplate:
        return DocumentTemplate(
            name=self.name,
            layout=self.layout,
            business=self.business_info,
            show_tax_breakdown=self.show_tax_breakdown,
            show_classification_codes=self.show_classification_codes,
            show_bank_details=self.show_bank_details,
            show_logo=self.show_logo,
            max_items_per_page=self.max_items_per_page,
        )


class TemplateResponse(BaseModel):
    success: bool = True
    template: DocumentTemplate


class TemplateListResponse(BaseModel):
    templates: list[DocumentTemplate]
    count: int


class TemplateDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Template deleted"


# ---------------------------------------------------------------------------
# Webhooks and health
# ---------------------------------------------------------------------------


class WebhookAck(BaseModel):
    success: bool = True


class HealthStatusResponse(BaseModel):
    total: int
    successful: int
    failed: int
    avg_processing_time_ms: int
    error_rate_pct: float
    last_processed_at: Optional[datetime] = None


class EventMetricResponse(BaseModel):
    timestamp: datetime
    source_id: str
    topic: str
    success: bool
    processing_time_ms: float
    error: Optional[str] = None
    retry_count: int = 0


class WebhookHealthResponse(BaseModel):
    scope: str
    healthy: bool
    overall: HealthStatusResponse
    by_topic: dict[str, HealthStatusResponse] = Field(..., serialization_alias="byTopic")
    recent_failures: list[EventMetricResponse] = Field(
        ..., serialization_alias="recentFailures"
    )


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    database: Optional[dict[str, Any]] = None
    queue: Optional[dict[str, int]] = None
