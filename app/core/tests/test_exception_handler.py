"""
Tests for the domain exception handler and error bodies.
"""

import pytest
from rest_framework.exceptions import NotAuthenticated

from core.exception_handler import domain_exception_handler
from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from payments.exceptions import (
    LockAcquisitionError,
    PaymentNotFoundError,
    PaymentValidationError,
    StaleRecordError,
    StripeRateLimitError,
)


class TestErrorBody:
    def test_to_dict_with_details(self):
        error = InvalidStateTransitionError(
            "Cannot change order status",
            details={"current_status": "pending", "target_status": "completed"},
        )

        assert error.to_dict() == {
            "error": "Cannot change order status",
            "error_code": "INVALID_STATE_TRANSITION",
            "details": {"current_status": "pending", "target_status": "completed"},
        }

    def test_details_omitted_when_empty(self):
        assert NotFoundError("Order not found").to_dict() == {
            "error": "Order not found",
            "error_code": "NOT_FOUND",
        }

    def test_custom_error_code(self):
        error = NotFoundError("Service not found", error_code="SERVICE_NOT_FOUND")

        assert error.error_code == "SERVICE_NOT_FOUND"
        assert str(error) == "[SERVICE_NOT_FOUND] Service not found"


class TestDomainExceptionHandler:
    @pytest.mark.parametrize(
        "error,status,code",
        [
            (ValidationError("bad"), 400, "VALIDATION_ERROR"),
            (NotFoundError("missing"), 404, "NOT_FOUND"),
            (PermissionDeniedError("no"), 403, "PERMISSION_DENIED"),
            (ConflictError("conflict"), 409, "CONFLICT"),
            (InvalidStateTransitionError("illegal"), 409, "INVALID_STATE_TRANSITION"),
            (StaleRecordError("stale"), 409, "STALE_RECORD"),
            (LockAcquisitionError("busy"), 409, "LOCK_ACQUISITION_FAILED"),
            (PaymentNotFoundError("missing"), 404, "PAYMENT_NOT_FOUND"),
            (PaymentValidationError("invalid"), 400, "PAYMENT_VALIDATION_ERROR"),
            (StripeRateLimitError("slow down"), 502, "STRIPE_RATE_LIMITED"),
        ],
    )
    def test_status_and_code(self, error, status, code):
        response = domain_exception_handler(error, {"view": None})

        assert response.status_code == status
        assert response.data["error_code"] == code

    def test_base_error_defaults(self):
        response = domain_exception_handler(BaseApplicationError("boom"), {})

        assert response.status_code == 400
        assert response.data["error_code"] == "APPLICATION_ERROR"

    def test_drf_exceptions_fall_through(self):
        response = domain_exception_handler(NotAuthenticated(), {"view": None, "request": None})

        assert response.status_code == 401
        assert "detail" in response.data

    def test_unknown_exceptions_are_not_handled(self):
        assert domain_exception_handler(RuntimeError("boom"), {}) is None
