"""
Release executor: transfers the freelancer's share of a captured payment.

Admin releases and the auto-release worker both go through
ReleaseService.release_payment, which is the only code that moves a payment
to TRANSFERRED.

Flow:
    1. Check preconditions (no lock, no gateway call)
    2. Acquire the per-payment release lock and re-check
    3. Resolve the charge (stored id, else from the payment intent)
    4. Transfer charge amount minus platform fee (outside any transaction)
    5. Conditional update: only a SUCCEEDED/PENDING row becomes TRANSFERRED
    6. Notify the freelancer after commit

A transfer is keyed by the payment id, so a retry after a crash between
steps 4 and 5 gets Stripe's original transfer back instead of a second one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from notifications import events
from notifications.services import NotificationService
from payments.adapters import ChargeResult, IdempotencyKeyGenerator, get_stripe_adapter
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.locks import release_lock
from payments.models import Payment
from payments.services.payment_service import split_amount
from payments.state_machines import PaymentStatus, PayoutStatus

if TYPE_CHECKING:
    from uuid import UUID


class ReleaseService(BaseService):
    """Moves captured funds to the freelancer's connected account."""

    @classmethod
    def release_payment(
        cls,
        payment_id: UUID | str,
        triggered_by: str = "admin",
    ) -> Payment:
        """
        Release a captured payment to the freelancer.

        Args:
            payment_id: Payment to release
            triggered_by: Audit label, e.g. "admin:<user id>" or "auto_release"

        Returns:
            The payment, now TRANSFERRED with payout COMPLETED

        Raises:
            PaymentNotFoundError: No such payment
            InvalidStateTransitionError: Not succeeded, or already paid out
            PaymentValidationError: Freelancer has no connected account, or
                the charge cannot be resolved
            LockAcquisitionError: Another release holds the lock
            StripeError: Transfer failed; the ledger is unchanged
        """
        logger = cls.get_logger()
        log_context = {"payment_id": str(payment_id), "triggered_by": triggered_by}

        cls._check_releasable(cls._load(payment_id))

        with release_lock(payment_id):
            payment = cls._load(payment_id)
            cls._check_releasable(payment)

            charge = cls._resolve_charge(payment)
            if charge.amount_cents != payment.amount_cents:
                logger.warning(
                    "Charge amount differs from ledger amount",
                    extra={
                        **log_context,
                        "charge_amount": charge.amount_cents,
                        "ledger_amount": payment.amount_cents,
                    },
                )
            platform_fee_cents, transfer_amount = split_amount(charge.amount_cents)

            transfer = get_stripe_adapter().create_transfer(
                amount_cents=transfer_amount,
                destination_account=payment.freelancer.stripe_connect_id,
                idempotency_key=IdempotencyKeyGenerator.generate("release", payment.id),
                currency=charge.currency,
                source_transaction=charge.id,
                metadata={
                    "order_id": str(payment.order_id),
                    "payment_id": str(payment.id),
                },
                description=f"Payment for order #{payment.order_id}",
            )

            with cls.atomic():
                locked = (
                    Payment.objects.select_for_update()
                    .filter(
                        pk=payment.pk,
                        status=PaymentStatus.SUCCEEDED,
                        payout_status=PayoutStatus.PENDING,
                    )
                    .first()
                )
                if locked is None:
                    logger.error(
                        "Payment changed while transfer was in flight",
                        extra={**log_context, "transfer_id": transfer.id},
                    )
                    raise InvalidStateTransitionError(
                        "Payment cannot be released",
                        details={"payment_id": str(payment.pk)},
                    )

                locked.mark_transferred(transfer.id)
                locked.save()

                NotificationService.notify_user_on_commit(
                    locked.freelancer_id,
                    events.PAYMENT_RELEASED,
                    {
                        "order_id": str(locked.order_id),
                        "payment_id": str(locked.id),
                        "amount_cents": transfer_amount,
                        "currency": charge.currency,
                    },
                )

        logger.info(
            "Payment released",
            extra={
                **log_context,
                "transfer_id": transfer.id,
                "transfer_amount": transfer_amount,
                "platform_fee_cents": platform_fee_cents,
            },
        )
        return locked

    @classmethod
    def _load(cls, payment_id: UUID | str) -> Payment:
        payment = (
            Payment.objects.select_related("freelancer")
            .filter(pk=payment_id)
            .first()
        )
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"payment_id": str(payment_id)},
            )
        return payment

    @classmethod
    def _check_releasable(cls, payment: Payment) -> None:
        if not payment.is_releasable:
            raise InvalidStateTransitionError(
                "Payment cannot be released",
                details={
                    "payment_id": str(payment.pk),
                    "status": payment.status,
                    "payout_status": payment.payout_status,
                },
            )
        if not payment.freelancer.stripe_connect_id:
            raise PaymentValidationError(
                "Freelancer has no connected payout account",
                error_code="NO_PAYOUT_ACCOUNT",
                details={"freelancer_id": str(payment.freelancer_id)},
            )

    @classmethod
    def _resolve_charge(cls, payment: Payment) -> ChargeResult:
        """
        Find the charge the transfer is funded from.

        A charge id learned from the intent is persisted right away; it is
        a fact about the capture, independent of whether the release
        finishes.
        """
        adapter = get_stripe_adapter()

        if payment.stripe_charge_id:
            return adapter.retrieve_charge(payment.stripe_charge_id)

        intent = adapter.retrieve_payment_intent(
            payment.stripe_payment_intent_id, expand=["latest_charge"]
        )
        charge = intent.latest_charge
        if charge is None and intent.latest_charge_id:
            charge = adapter.retrieve_charge(intent.latest_charge_id)
        if charge is None:
            raise PaymentValidationError(
                "Could not resolve the charge for this payment",
                error_code="CHARGE_NOT_FOUND",
                details={
                    "payment_id": str(payment.pk),
                    "payment_intent_id": payment.stripe_payment_intent_id,
                },
            )

        Payment.objects.filter(pk=payment.pk).update(
            stripe_charge_id=charge.id,
            currency=charge.currency,
        )
        payment.stripe_charge_id = charge.id
        payment.currency = charge.currency
        cls.get_logger().info(
            "Backfilled charge id before release",
            extra={"payment_id": str(payment.pk), "charge_id": charge.id},
        )
        return charge
