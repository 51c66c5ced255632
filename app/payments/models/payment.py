"""
Payment model: the ledger entry for one payment attempt on an order.

All amounts are stored as integers in the smallest currency unit. Two
independent status axes are tracked:

    status         pending → succeeded → transferred, pending → failed
    payout_status  pending → completed

The coupled pair (status=transferred, payout_status=completed) is only ever
written by the mark_transferred() transition.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus

    payment = Payment.objects.select_for_update().get(
        stripe_payment_intent_id="pi_123"
    )
    payment.mark_succeeded()  # pending -> succeeded
    payment.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import PaymentStatus, PayoutStatus


def cents_to_major(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def default_currency() -> str:
    return settings.PAYMENT_CURRENCY


class Payment(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Payment for an order, captured by Stripe and later released.

    Fields:
        order: Order being paid for
        client/freelancer: Parties, denormalised from the order
        amount_cents: Total charged to the client
        platform_fee_cents: Platform's share
        freelancer_amount_cents: Freelancer's share (amount - fee)
        status: Capture status (managed by FSM, protected)
        payout_status: Release status
        stripe_payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        stripe_charge_id: Charge ID, backfilled from webhooks or on release
        stripe_transfer_id: Transfer ID, set on release
        currency: ISO 4217 currency code (lowercase)
        released_at: When funds were transferred to the freelancer
        version: Optimistic locking version

    Note:
        At most one payment per order may be pending or succeeded at a
        time. A failed payment does not block a new attempt.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Order this payment is for",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_made",
        help_text="Client paying for the order",
    )
    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_received",
        help_text="Freelancer the funds are released to",
    )

    # ==========================================================================
    # Amounts (smallest currency unit)
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Total amount charged in smallest currency unit",
    )
    platform_fee_cents = models.PositiveBigIntegerField(
        help_text="Platform fee in smallest currency unit",
    )
    freelancer_amount_cents = models.PositiveBigIntegerField(
        help_text="Amount owed to the freelancer in smallest currency unit",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Status
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Capture status (managed by FSM)",
    )
    payout_status = models.CharField(
        max_length=20,
        choices=PayoutStatus.choices,
        default=PayoutStatus.PENDING,
        db_index=True,
        help_text="Release status of the freelancer's share",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )
    stripe_charge_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Charge ID (ch_xxx), backfilled after capture",
    )
    stripe_transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Transfer ID (tr_xxx), set on release",
    )

    released_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When funds were transferred to the freelancer",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["order", "status"],
                name="payment_order_status_idx",
            ),
            models.Index(
                fields=["status", "payout_status"],
                name="payment_status_payout_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    amount_cents=models.F("platform_fee_cents")
                    + models.F("freelancer_amount_cents")
                ),
                name="payment_split_sums_to_amount",
            ),
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(
                    status__in=[PaymentStatus.PENDING, PaymentStatus.SUCCEEDED]
                ),
                name="payment_one_active_per_order",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Payment({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # Major-unit views (API output only)
    # ==========================================================================

    @property
    def amount(self) -> Decimal:
        return cents_to_major(self.amount_cents)

    @property
    def platform_fee(self) -> Decimal:
        return cents_to_major(self.platform_fee_cents)

    @property
    def freelancer_amount(self) -> Decimal:
        return cents_to_major(self.freelancer_amount_cents)

    @property
    def is_releasable(self) -> bool:
        """Captured and not yet paid out."""
        return (
            self.status == PaymentStatus.SUCCEEDED
            and self.payout_status == PayoutStatus.PENDING
        )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.SUCCEEDED,
    )
    def mark_succeeded(self):
        """
        Stripe confirmed the capture.

        Transition: PENDING -> SUCCEEDED
        """
        pass

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self):
        """Transition: PENDING -> FAILED"""
        pass

    @transition(
        field=status,
        source=PaymentStatus.SUCCEEDED,
        target=PaymentStatus.TRANSFERRED,
        conditions=[lambda payment: payment.payout_status == PayoutStatus.PENDING],
    )
    def mark_transferred(self, transfer_id: str):
        """
        Funds were transferred to the freelancer's connected account.

        Transition: SUCCEEDED -> TRANSFERRED (payout PENDING -> COMPLETED)

        Args:
            transfer_id: Stripe Transfer ID (tr_xxx)
        """
        self.stripe_transfer_id = transfer_id
        self.payout_status = PayoutStatus.COMPLETED
        self.released_at = timezone.now()
