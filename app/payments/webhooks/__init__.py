"""
Webhook handling for payment events from Stripe.

Webhooks are verified, stored idempotently, and processed asynchronously
via the process_webhook_event Celery task.
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.views import stripe_connect_webhook, stripe_webhook

__all__ = [
    "dispatch_webhook",
    "register_handler",
    "stripe_connect_webhook",
    "stripe_webhook",
]
