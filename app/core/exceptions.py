"""
Base exception classes for application-wide error handling.

Every domain error carries a human-readable message, a machine-readable
error code, optional details and the HTTP status the API layer answers
with. Views never translate these by hand: the DRF exception handler in
core.exception_handler turns any BaseApplicationError into a JSON response.

Exception Hierarchy:
    BaseApplicationError (base, 400)
    ├── ValidationError - Input or business rule violations (400)
    ├── PermissionDeniedError - Caller is not allowed to act (403)
    ├── NotFoundError - Referenced record does not exist (404)
    └── ConflictError - Record is not in a state that allows the action (409)
        └── InvalidStateTransitionError - State machine refused the transition

Usage:
    from core.exceptions import NotFoundError, PermissionDeniedError

    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFoundError(
            f"Order {order_id} not found",
            error_code="ORDER_NOT_FOUND",
            details={"order_id": str(order_id)},
        )

    if not order.is_party(user):
        raise PermissionDeniedError("Not authorized to view this order")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, current state, etc.)
        http_status: Status code used when the error reaches the API layer
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Payment cannot be released",
                "error_code": "INVALID_STATE_TRANSITION",
                "details": {"status": "pending", "payout_status": "pending"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input or a business rule is violated.

    Use for service-layer checks such as ordering your own service or
    sending an empty message. Shape validation of request bodies stays
    in DRF serializers.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a referenced order, payment or user does not exist."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller lacks the role or ownership an action requires.

    Authentication failures (missing or invalid token) are handled by DRF;
    this covers authorization only, for example a client trying to accept
    an order or a freelancer acting on another freelancer's order.
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current record state.

    Use for:
    - Illegal state transitions (paying a paid order, releasing twice)
    - Concurrent modification detected by optimistic locking
    - Lock contention on a critical section
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed (or a failed conditional
    update) in the standard error format.

    Example:
        if not can_proceed(order.start):
            raise InvalidStateTransitionError(
                f"Cannot move order from '{order.status}' to 'in_progress'",
                details={"current_status": order.status, "target_status": "in_progress"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"

