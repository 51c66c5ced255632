"""
Payment ledger service: intent creation and payment lookups.

Amounts are handled as integers in the smallest currency unit. Decimal only
appears at the edges: converting the order's price snapshot into cents and
rendering major-unit values for the API.

Usage:
    from payments.services import PaymentService

    initiated = PaymentService.initiate_payment(client, order_id)
    initiated.client_secret  # handed to the browser for Stripe confirmation
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from core.services import BaseService
from orders.models import Order, OrderPaymentStatus, OrderStatus
from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    get_stripe_adapter,
)
from payments.exceptions import PaymentNotFoundError
from payments.models import Payment
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from uuid import UUID

    from django.db.models import QuerySet

    from authentication.models import User


ACTIVE_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.SUCCEEDED)


# =============================================================================
# Amount Helpers
# =============================================================================


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit Decimal (e.g. 49.99) to cents (4999)."""
    return round_half_up(Decimal(amount) * 100)


def split_amount(amount_cents: int, fee_percent: int | None = None) -> tuple[int, int]:
    """
    Split an amount into (platform_fee_cents, freelancer_amount_cents).

    The fee is rounded half up; the freelancer receives the remainder, so
    the two parts always sum to amount_cents.

    Example:
        split_amount(10050)  # (1005, 9045) at 10%
        split_amount(5)      # (1, 4): 0.5 rounds up
    """
    if fee_percent is None:
        fee_percent = settings.PLATFORM_FEE_PERCENT
    fee = round_half_up(Decimal(amount_cents) * Decimal(fee_percent) / 100)
    return fee, amount_cents - fee


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class InitiatedPayment:
    """
    Result of initiate_payment.

    Attributes:
        payment: The pending ledger entry
        client_secret: Secret the client confirms the intent with
        reused: True when an existing pending intent was returned
    """

    payment: Payment
    client_secret: str | None
    reused: bool = False


# =============================================================================
# Payment Service
# =============================================================================


class PaymentService(BaseService):
    """Creates payment intents and exposes the ledger to the API."""

    @classmethod
    def initiate_payment(cls, user: User, order_id: UUID | str) -> InitiatedPayment:
        """
        Start (or resume) payment for an order.

        Concurrent requests for the same order serialise on the order row,
        which stays locked while the intent is created. A pending payment is
        resumed instead of creating a second intent.

        Raises:
            NotFoundError: No such order
            PermissionDeniedError: Caller is not the order's client
            InvalidStateTransitionError: Order cancelled or already paid
            StripeError: Gateway failure; nothing is persisted
        """
        logger = cls.get_logger()
        adapter = get_stripe_adapter()

        with cls.atomic():
            order = (
                Order.objects.select_for_update()
                .filter(pk=order_id)
                .select_related("service")
                .first()
            )
            if order is None:
                raise NotFoundError(
                    "Order not found",
                    error_code="ORDER_NOT_FOUND",
                    details={"order_id": str(order_id)},
                )
            if order.client_id != user.pk:
                raise PermissionDeniedError("Only the order's client can pay for it")
            if order.status == OrderStatus.CANCELLED:
                raise InvalidStateTransitionError(
                    "Cannot pay for a cancelled order",
                    details={"order_id": str(order.id), "status": order.status},
                )

            active = (
                Payment.objects.filter(order=order, status__in=ACTIVE_PAYMENT_STATUSES)
                .order_by("-created_at")
                .first()
            )
            if (
                active is not None and active.status == PaymentStatus.SUCCEEDED
            ) or order.payment_status == OrderPaymentStatus.PAID:
                raise InvalidStateTransitionError(
                    "Payment already completed for this order",
                    error_code="PAYMENT_ALREADY_COMPLETED",
                    details={"order_id": str(order.id)},
                )

            if active is not None:
                intent = adapter.retrieve_payment_intent(active.stripe_payment_intent_id)
                logger.info(
                    "Returning existing pending payment",
                    extra={
                        "order_id": str(order.id),
                        "payment_id": str(active.id),
                    },
                )
                return InitiatedPayment(
                    payment=active,
                    client_secret=intent.client_secret,
                    reused=True,
                )

            amount_cents = to_minor_units(order.price)
            platform_fee_cents, freelancer_amount_cents = split_amount(amount_cents)
            # Failed attempts keep their intents; each new attempt needs its own key
            attempt = Payment.objects.filter(order=order).count() + 1

            intent = adapter.create_payment_intent(
                CreatePaymentIntentParams(
                    amount_cents=amount_cents,
                    currency=settings.PAYMENT_CURRENCY,
                    idempotency_key=IdempotencyKeyGenerator.generate(
                        "create_intent", order.id, attempt
                    ),
                    metadata={
                        "order_id": str(order.id),
                        "service_id": str(order.service_id),
                        "client_id": str(order.client_id),
                        "freelancer_id": str(order.freelancer_id),
                    },
                )
            )

            payment = Payment.objects.create(
                order=order,
                client_id=order.client_id,
                freelancer_id=order.freelancer_id,
                amount_cents=amount_cents,
                platform_fee_cents=platform_fee_cents,
                freelancer_amount_cents=freelancer_amount_cents,
                currency=settings.PAYMENT_CURRENCY,
                stripe_payment_intent_id=intent.id,
            )

        logger.info(
            "Payment initiated",
            extra={
                "order_id": str(order.id),
                "payment_id": str(payment.id),
                "payment_intent_id": intent.id,
                "amount_cents": amount_cents,
                "platform_fee_cents": platform_fee_cents,
            },
        )
        return InitiatedPayment(payment=payment, client_secret=intent.client_secret)

    @classmethod
    def get_order_payment(cls, user: User, order_id: UUID | str) -> Payment:
        """
        Latest payment of an order, for its parties or an admin.

        Raises:
            NotFoundError: No such order
            PermissionDeniedError: Caller is not a party or admin
            PaymentNotFoundError: Order has no payment yet
        """
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            raise NotFoundError(
                "Order not found",
                error_code="ORDER_NOT_FOUND",
                details={"order_id": str(order_id)},
            )
        if not (order.is_party(user) or user.is_platform_admin):
            raise PermissionDeniedError("Not authorized to view this payment")

        payment = order.payments.order_by("-created_at").first()
        if payment is None:
            raise PaymentNotFoundError(
                "No payment found for this order",
                details={"order_id": str(order_id)},
            )
        return payment

    @classmethod
    def list_payments(
        cls,
        status: str | None = None,
        payout_status: str | None = None,
    ) -> QuerySet[Payment]:
        """Admin listing, newest first."""
        queryset = Payment.objects.select_related("order", "client", "freelancer")
        if status:
            queryset = queryset.filter(status=status)
        if payout_status:
            queryset = queryset.filter(payout_status=payout_status)
        return queryset.order_by("-created_at")

    @classmethod
    def get_payment(cls, payment_id: UUID | str) -> Payment:
        payment = (
            Payment.objects.select_related("order", "client", "freelancer")
            .filter(pk=payment_id)
            .first()
        )
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"payment_id": str(payment_id)},
            )
        return payment
