"""
Webhook endpoint views for Stripe.

Two endpoints share the same intake:
- stripe_webhook: platform events (payment intents, charges)
- stripe_connect_webhook: connected account events (account.updated)

Each delivery is:
1. Verified against the endpoint's signing secret
2. Stored as a WebhookEvent (idempotent via stripe_event_id)
3. Queued for async processing
4. Answered immediately

Usage:
    # In payments/urls.py
    path("webhook/", stripe_webhook, name="stripe-webhook"),
    path("connect-webhook/", stripe_connect_webhook, name="stripe-connect-webhook"),
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import get_stripe_adapter
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus, WebhookSource


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive platform webhook events.

    Returns:
        - 200 "Accepted": event stored and queued
        - 200 "Already processed": redelivery of a processed event
        - 400: Missing or invalid signature, or malformed event
        - 503: Event stored but could not be queued; Stripe redelivers
    """
    return _receive_webhook(
        request,
        secret=settings.STRIPE_WEBHOOK_SECRET,
        source=WebhookSource.PLATFORM,
    )


@csrf_exempt
@require_POST
def stripe_connect_webhook(request: HttpRequest) -> HttpResponse:
    """Receive connected account events; same contract as stripe_webhook."""
    return _receive_webhook(
        request,
        secret=settings.STRIPE_CONNECT_WEBHOOK_SECRET or settings.STRIPE_WEBHOOK_SECRET,
        source=WebhookSource.CONNECT,
    )


def _receive_webhook(request: HttpRequest, secret: str, source: str) -> HttpResponse:
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning(
            "Webhook received without Stripe-Signature header",
            extra={"source": source},
        )
        return HttpResponse("Missing signature", status=400)

    try:
        event_data = get_stripe_adapter().verify_webhook_signature(
            payload, signature, secret=secret
        )
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"source": source, "error": str(e)},
        )
        return HttpResponse("Invalid signature", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields", extra={"source": source})
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
            "source": source,
        },
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "source": source,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created:
        if webhook_event.is_processed:
            logger.info(
                "Webhook already processed, returning success",
                extra={"stripe_event_id": stripe_event_id},
            )
            return HttpResponse("Already processed", status=200)

        logger.info(
            f"Webhook already exists with status: {webhook_event.status}",
            extra={"stripe_event_id": stripe_event_id},
        )

    from payments.tasks import process_webhook_event

    try:
        process_webhook_event.delay(str(webhook_event.id))
    except Exception:
        # Broker unreachable: a non-2xx makes Stripe redeliver, and the
        # stored event is found again by stripe_event_id
        logger.error(
            "Failed to queue webhook",
            extra={"stripe_event_id": stripe_event_id},
            exc_info=True,
        )
        return HttpResponse("Queue unavailable", status=503)

    logger.info(
        "Webhook queued for processing",
        extra={
            "stripe_event_id": stripe_event_id,
            "webhook_event_id": str(webhook_event.id),
        },
    )
    return HttpResponse("Accepted", status=200)
