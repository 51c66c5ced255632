"""
Webhook event handlers for Stripe events.

Handlers are registered by event type and return a ServiceResult: success
marks the WebhookEvent processed, failure marks it failed for retry.

Handled events:
- payment_intent.succeeded: capture confirmed, order becomes paid
- payment_intent.payment_failed: capture failed
- charge.succeeded: charge id backfill
- account.updated: connected account readiness

Every handler is safe to run more than once for the same event: a payment
that is already succeeded or transferred is never moved backwards.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.db import transaction

from authentication.models import User
from core.services import ServiceResult
from notifications import events
from notifications.services import NotificationService
from orders.models import Order, OrderPaymentStatus
from payments.adapters import get_stripe_adapter
from payments.exceptions import StripeError
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Event types without a handler are acknowledged with a success result,
    so Stripe stops redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


def _charge_id_from(value) -> str | None:
    """latest_charge / charge fields arrive as an id or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _backfill_charge(payment: Payment, charge_id: str | None, currency: str | None) -> list[str]:
    """Set charge id and currency if not yet known; returns changed fields."""
    changed = []
    if charge_id and not payment.stripe_charge_id:
        payment.stripe_charge_id = charge_id
        changed.append("stripe_charge_id")
    if currency and payment.currency != currency.lower():
        payment.currency = currency.lower()
        changed.append("currency")
    return changed


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Capture confirmed: payment PENDING -> SUCCEEDED, order becomes paid.

    The freelancer is notified only when this event performs the
    transition. Redeliveries and late events for failed payments change
    nothing.
    """
    intent = webhook_event.data_object
    payment_intent_id = intent.get("id")
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "payment_intent_id": payment_intent_id,
    }

    if not payment_intent_id:
        logger.error("payment_intent.succeeded without an intent id", extra=log_context)
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .filter(stripe_payment_intent_id=payment_intent_id)
            .first()
        )
        if payment is None:
            logger.warning("No payment for succeeded intent", extra=log_context)
            return ServiceResult.success({"status": "payment_not_found"})

        if payment.status in (PaymentStatus.SUCCEEDED, PaymentStatus.TRANSFERRED):
            logger.info(
                "Payment already succeeded, nothing to do",
                extra={**log_context, "payment_id": str(payment.id)},
            )
            return ServiceResult.success({"status": "already_succeeded"})

        if payment.status == PaymentStatus.FAILED:
            logger.error(
                "Succeeded event for a failed payment, needs manual review",
                extra={**log_context, "payment_id": str(payment.id)},
            )
            return ServiceResult.success({"status": "manual_review"})

        payment.mark_succeeded()
        _backfill_charge(
            payment,
            _charge_id_from(intent.get("latest_charge")),
            intent.get("currency"),
        )
        payment.save()

        order = Order.objects.select_for_update().get(pk=payment.order_id)
        order.payment_status = OrderPaymentStatus.PAID
        order.save(update_fields=["payment_status", "updated_at"])

        NotificationService.notify_user_on_commit(
            payment.freelancer_id,
            events.PAYMENT_RECEIVED,
            {
                "order_id": str(order.id),
                "payment_id": str(payment.id),
                "amount_cents": payment.freelancer_amount_cents,
                "currency": payment.currency,
            },
        )

    logger.info(
        "Payment succeeded",
        extra={
            **log_context,
            "payment_id": str(payment.id),
            "order_id": str(payment.order_id),
        },
    )

    if not payment.stripe_charge_id:
        _backfill_charge_from_gateway(payment, payment_intent_id, log_context)

    return ServiceResult.success({"status": "succeeded", "payment_id": str(payment.id)})


def _backfill_charge_from_gateway(
    payment: Payment, payment_intent_id: str, log_context: dict
) -> None:
    """
    Look up the captured charge when the event payload did not carry it.

    Best-effort: the payment is already committed as succeeded, and a
    missing charge id is resolved again at release time.
    """
    adapter = get_stripe_adapter()
    try:
        intent = adapter.retrieve_payment_intent(
            payment_intent_id, expand=["latest_charge"]
        )
        charge = intent.latest_charge
        if charge is None and intent.latest_charge_id:
            charge = adapter.retrieve_charge(intent.latest_charge_id)
    except StripeError as e:
        logger.warning(
            "Could not backfill charge id from Stripe",
            extra={
                **log_context,
                "payment_id": str(payment.id),
                "error_code": e.error_code,
            },
        )
        return

    if charge is None:
        logger.info(
            "Intent has no charge yet, leaving charge id empty",
            extra={**log_context, "payment_id": str(payment.id)},
        )
        return

    changed = _backfill_charge(payment, charge.id, charge.currency)
    if changed:
        Payment.objects.filter(pk=payment.pk).update(
            **{name: getattr(payment, name) for name in changed}
        )
        logger.info(
            "Backfilled charge id from Stripe",
            extra={**log_context, "payment_id": str(payment.id), "charge_id": charge.id},
        )


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Capture failed: payment PENDING -> FAILED. The order stays unpaid."""
    intent = webhook_event.data_object
    payment_intent_id = intent.get("id")
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "payment_intent_id": payment_intent_id,
    }

    if not payment_intent_id:
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .filter(stripe_payment_intent_id=payment_intent_id)
            .first()
        )
        if payment is None:
            logger.warning("No payment for failed intent", extra=log_context)
            return ServiceResult.success({"status": "payment_not_found"})

        if payment.status != PaymentStatus.PENDING:
            logger.info(
                f"Ignoring failure for payment in status {payment.status}",
                extra={**log_context, "payment_id": str(payment.id)},
            )
            return ServiceResult.success({"status": "ignored"})

        payment.mark_failed()
        payment.save()

    error = intent.get("last_payment_error") or {}
    logger.info(
        "Payment failed",
        extra={
            **log_context,
            "payment_id": str(payment.id),
            "failure_code": error.get("code"),
            "decline_code": error.get("decline_code"),
        },
    )
    return ServiceResult.success({"status": "failed", "payment_id": str(payment.id)})


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.succeeded")
def handle_charge_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """Backfill the charge id and currency; never touches payment status."""
    charge = webhook_event.data_object
    charge_id = charge.get("id")
    payment_intent_id = _charge_id_from(charge.get("payment_intent"))

    if not charge_id or not payment_intent_id:
        logger.info(
            "charge.succeeded without payment intent, ignoring",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success({"status": "ignored"})

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .filter(stripe_payment_intent_id=payment_intent_id)
            .first()
        )
        if payment is None:
            return ServiceResult.success({"status": "payment_not_found"})

        changed = _backfill_charge(payment, charge_id, charge.get("currency"))
        if changed:
            payment.save(update_fields=[*changed, "updated_at"])
            logger.info(
                "Backfilled charge details",
                extra={
                    "payment_id": str(payment.id),
                    "charge_id": charge_id,
                    "fields": changed,
                },
            )

    return ServiceResult.success({"status": "updated" if changed else "unchanged"})


# =============================================================================
# Connect Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Enable payouts once the connected account can take charges and payouts.

    The freelancer is notified the first time this happens.
    """
    account = webhook_event.data_object
    account_id = account.get("id")

    with transaction.atomic():
        user = (
            User.objects.select_for_update()
            .filter(stripe_connect_id=account_id)
            .first()
            if account_id
            else None
        )
        if user is None:
            logger.info(
                "account.updated for unknown account",
                extra={
                    "stripe_event_id": webhook_event.stripe_event_id,
                    "account_id": account_id,
                },
            )
            return ServiceResult.success({"status": "user_not_found"})

        ready = bool(account.get("charges_enabled")) and bool(
            account.get("payouts_enabled")
        )
        if not ready or user.payout_enabled:
            return ServiceResult.success({"status": "unchanged"})

        user.payout_enabled = True
        user.save(update_fields=["payout_enabled", "updated_at"])

        NotificationService.notify_user_on_commit(
            user.pk,
            events.ACCOUNT_READY,
            {"message": "Your payout account is ready to receive payments"},
        )

    logger.info(
        "Payouts enabled from account.updated",
        extra={"user_id": str(user.pk), "account_id": account_id},
    )
    return ServiceResult.success({"status": "payout_enabled", "user_id": str(user.pk)})
