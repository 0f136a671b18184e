"""Unit tests for the error hierarchy."""

import pytest

from gst.core.exceptions import (
    ArtifactExpiredError,
    AuthenticationError,
    ClientError,
    ErrorCategory,
    ExternalServiceError,
    InvalidJobStateError,
    ResourceNotFoundError,
    ServerError,
    TooManyItemsError,
    UpstreamProviderError,
    ValidationError,
    WebhookProcessingError,
)


class TestClientErrors:
    def test_validation_error(self):
        error = ValidationError("Taxable amount must be greater than 0", field="amount")

        assert isinstance(error, ClientError)
        assert error.http_status == 422
        assert error.details == {"field": "amount"}
        assert error.retryable is False

    @pytest.mark.parametrize(
        "error, status",
        [
            (TooManyItemsError(100, 101), 400),
            (ResourceNotFoundError("Job", "job_1"), 404),
            (ArtifactExpiredError("key"), 410),
            (InvalidJobStateError("cancel", "completed"), 400),
            (AuthenticationError(), 401),
        ],
    )
    def test_statuses(self, error, status):
        assert error.http_status == status
        assert error.category is ErrorCategory.CLIENT_ERROR

    def test_problem_details(self):
        problem = TooManyItemsError(100, 150).to_dict()

        assert problem["type"] == "/errors/TOO_MANY_ITEMS"
        assert problem["status"] == 400
        assert problem["error"] == "Too many items: 150 (max: 100)"
        assert problem["details"] == {"limit": 100, "actual": 150}


class TestServerErrors:
    @pytest.mark.parametrize(
        "error_type, status",
        [("timeout", 504), ("circuit_open", 503), ("unavailable", 502), ("error", 502)],
    )
    def test_external_service_statuses(self, error_type, status):
        error = ExternalServiceError("render", error_type)

        assert error.http_status == status
        assert error.error_code == f"RENDER_{error_type.upper()}"
        assert error.retryable is True
        assert error.details["service"] == "render"

    def test_upstream_provider_error(self):
        error = UpstreamProviderError("unauthorized", details={"detail": "bad token"})

        assert error.error_code == "COMMERCE_UNAUTHORIZED"
        assert error.details == {
            "detail": "bad token",
            "service": "commerce",
            "error_type": "unauthorized",
        }
        assert error.to_dict()["detail"] == "bad token"

    def test_webhook_processing_error(self):
        error = WebhookProcessingError("orders/create", "boom")

        assert isinstance(error, ServerError)
        assert error.http_status == 500
        assert error.details == {"topic": "orders/create"}
