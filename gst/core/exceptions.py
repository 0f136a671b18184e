"""Exception hierarchy for the GST documents service.

All exceptions inherit from BaseError and carry structured error information
compatible with RFC 7807 Problem Details for HTTP APIs. Routes never build
error bodies by hand: they raise one of these and the registered handler in
``core.error_handlers`` renders it.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"
    VALIDATION = "validation"
    BUSINESS_LOGIC = "business_logic"


class BaseError(Exception):
    """Base exception for all service errors.

    Attributes:
        message: Human-readable error message
        error_code: Application-specific error code
        category: Error category for classification
        http_status: HTTP status code to return
        details: Additional context (dict)
        retryable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        http_status: int,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.http_status = http_status
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format.

        Returns:
            Dict containing standardized error information
        """
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "status": self.http_status,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
            "error": self.message,
            "details": self.details or None,
        }


class ClientError(BaseError):
    """Base for client errors (4xx). Never retried."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.CLIENT_ERROR,
            http_status=kwargs.pop("http_status", 400),
            retryable=False,
            **kwargs,
        )


class ValidationError(ClientError):
    """Input validation failed (422 Unprocessable Entity).

    Args:
        message: Validation error description
        field: Name of the field that failed validation
        details: Additional validation context
    """

    def __init__(self, message: str, field: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details["field"] = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            http_status=kwargs.pop("http_status", 422),
            details=additional_details,
            **kwargs,
        )


class EmptyInputError(ClientError):
    """A generator or job was asked to work on zero orders (400)."""

    def __init__(self, message: str = "No orders provided"):
        super().__init__(
            message=message,
            error_code="EMPTY_INPUT",
            http_status=400,
        )


class TooManyItemsError(ClientError):
    """Item count exceeds the cap of the submission path (400).

    Args:
        limit: Maximum accepted number of items
        actual: Number of items submitted
    """

    def __init__(self, limit: int, actual: int):
        super().__init__(
            message=f"Too many items: {actual} (max: {limit})",
            error_code="TOO_MANY_ITEMS",
            http_status=400,
            details={"limit": limit, "actual": actual},
        )


class RangeTooLargeError(ClientError):
    """Date range exceeds the maximum export window (400)."""

    def __init__(self, max_days: int, actual_days: int):
        super().__init__(
            message=f"Date range too large: {actual_days} days (max: {max_days})",
            error_code="RANGE_TOO_LARGE",
            http_status=400,
            details={"max_days": max_days, "actual_days": actual_days},
        )


class ResourceNotFoundError(ClientError):
    """Resource not found (404).

    Args:
        resource_type: Type of resource (e.g., "Job", "Artifact")
        resource_id: Identifier of the missing resource
    """

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            message=f"{resource_type} not found",
            error_code="RESOURCE_NOT_FOUND",
            http_status=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ArtifactExpiredError(ClientError):
    """Stored artifact is past its expiry (410 Gone)."""

    def __init__(self, key: str):
        super().__init__(
            message="File has expired",
            error_code="ARTIFACT_EXPIRED",
            http_status=410,
            details={"resource_type": "Artifact", "resource_id": key},
        )


class InvalidJobStateError(ClientError):
    """Job operation not allowed in the job's current status (400).

    Args:
        action: Attempted action ("cancel", "delete")
        status: Current job status
    """

    def __init__(self, action: str, status: str):
        super().__init__(
            message=f"Cannot {action} job with status: {status}",
            error_code="INVALID_JOB_STATE",
            http_status=400,
            details={"action": action, "status": status},
        )
        self.status = status


class JurisdictionUnresolvedError(ClientError):
    """Buyer or seller jurisdiction cannot be determined (422)."""

    def __init__(self, message: str = "Unable to determine customer state", **kwargs):
        super().__init__(
            message=message,
            error_code="JURISDICTION_UNRESOLVED",
            http_status=422,
            **kwargs,
        )


class AuthenticationError(ClientError):
    """Signature or session credential rejected (401). Never retried."""

    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED",
            http_status=401,
            **kwargs,
        )


class ServerError(BaseError):
    """Base for server errors (5xx).

    Represents internal server errors or failures in external dependencies.
    Some server errors may be retryable.
    """

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.SERVER_ERROR),
            http_status=kwargs.pop("http_status", 500),
            retryable=kwargs.pop("retryable", False),
            **kwargs,
        )


class WebhookProcessingError(ServerError):
    """An event handler kept failing after every retry attempt (500)."""

    def __init__(self, topic: str, reason: str):
        super().__init__(
            message=f"Webhook processing failed: {reason}",
            error_code="WEBHOOK_PROCESSING_FAILED",
            details={"topic": topic},
        )


class ExternalServiceError(ServerError):
    """External service failure (502 Bad Gateway / 504 Gateway Timeout).

    Raised when the commerce API, render service or object storage fail or
    time out. These errors are retryable as they may be transient.

    Args:
        service_name: Name of the external service
        error_type: Type of error ("timeout", "unavailable", "error", "circuit_open")
        details: Additional error context
    """

    def __init__(self, service_name: str, error_type: str, **kwargs):
        if error_type == "timeout":
            http_status = 504
        elif error_type == "circuit_open":
            http_status = 503
        else:
            http_status = 502

        additional_details = kwargs.pop("details", {})
        additional_details.update(
            {
                "service": service_name,
                "error_type": error_type,
            }
        )

        super().__init__(
            message=kwargs.pop("message", f"{service_name} service {error_type}"),
            error_code=f"{service_name.upper()}_{error_type.upper()}",
            category=ErrorCategory.EXTERNAL_SERVICE,
            http_status=http_status,
            retryable=True,
            details=additional_details,
            **kwargs,
        )


class UpstreamProviderError(ExternalServiceError):
    """Commerce data provider failed to return orders."""

    def __init__(self, error_type: str = "error", **kwargs):
        super().__init__(service_name="commerce", error_type=error_type, **kwargs)


class RenderBackendError(ExternalServiceError):
    """HTML-to-PDF render backend failed."""

    def __init__(self, error_type: str = "error", **kwargs):
        super().__init__(service_name="render", error_type=error_type, **kwargs)


class StorageBackendError(ExternalServiceError):
    """Artifact backend failed to persist or read a payload."""

    def __init__(self, error_type: str = "error", **kwargs):
        super().__init__(service_name="storage", error_type=error_type, **kwargs)
