"""
Payment domain models.

This module contains all payment-related models:
- Payment: Ledger entry for a payment on an order (capture and payout status)
- WebhookEvent: Stripe webhook event tracking for idempotent processing
- ScheduledRelease: Durable timer for automatic payment release
"""

from payments.models.payment import Payment
from payments.models.scheduled_release import ScheduledRelease
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "ScheduledRelease",
    "WebhookEvent",
]
