"""
Pytest fixtures for webhook tests.

Provides builders for Stripe event payloads and stored WebhookEvents, plus
a client that posts correctly signed deliveries to the webhook endpoints.
"""

import json

import pytest
from django.test import Client

from payments.tests.factories import WebhookEventFactory
from payments.tests.fakes import stripe_signature_header


# =============================================================================
# Payload Builders
# =============================================================================


@pytest.fixture
def make_event_payload():
    """Build a Stripe event envelope around a data object."""

    def _create(event_type, data_object, event_id="evt_test_webhook"):
        return {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {"object": data_object},
        }

    return _create


@pytest.fixture
def make_webhook_event(make_event_payload):
    """Store a pending WebhookEvent for an event type and data object."""

    def _create(event_type, data_object, **kwargs):
        event = WebhookEventFactory.build(event_type=event_type)
        payload = make_event_payload(event_type, data_object, event.stripe_event_id)
        return WebhookEventFactory(
            stripe_event_id=event.stripe_event_id,
            event_type=event_type,
            payload=payload,
            **kwargs,
        )

    return _create


@pytest.fixture
def succeeded_intent_object():
    def _create(payment, latest_charge="ch_webhook123", currency="eur"):
        return {
            "id": payment.stripe_payment_intent_id,
            "object": "payment_intent",
            "status": "succeeded",
            "amount": payment.amount_cents,
            "currency": currency,
            "latest_charge": latest_charge,
        }

    return _create


# =============================================================================
# Signed Delivery
# =============================================================================


@pytest.fixture
def post_webhook(settings):
    """
    POST a signed event to a webhook endpoint.

    Usage:
        response = post_webhook("/api/v1/payments/webhook/", payload)
        response = post_webhook(url, payload, secret="whsec_wrong")
    """
    client = Client()

    def _post(url, payload, secret=None, signature=None):
        body = json.dumps(payload)
        headers = {}
        if signature is None:
            signature = stripe_signature_header(
                body, secret or settings.STRIPE_WEBHOOK_SECRET
            )
        if signature:
            headers["HTTP_STRIPE_SIGNATURE"] = signature
        return client.post(url, data=body, content_type="application/json", **headers)

    return _post
