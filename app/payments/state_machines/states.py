"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment status (capture axis):
    pending → succeeded → transferred
    pending → failed

Payout status (release axis):
    pending → completed (only inside succeeded → transferred)

WebhookEvent status:
    pending → processing → processed
    pending → processing → failed (retried by retry_failed_webhooks)

ScheduledRelease outcome:
    (unset) → released | skipped | failed
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Capture status of a Payment.

    Terminal states: FAILED, TRANSFERRED

    State Flow:
        PENDING → SUCCEEDED   (payment_intent.succeeded webhook)
        PENDING → FAILED      (payment_intent.payment_failed webhook)
        SUCCEEDED → TRANSFERRED (release executor, with payout completed)
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    TRANSFERRED = "transferred", "Transferred"


class PayoutStatus(models.TextChoices):
    """
    Release status of a Payment's funds to the freelancer.

    Moves to COMPLETED together with PaymentStatus.TRANSFERRED and never
    on its own.
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class WebhookSource(models.TextChoices):
    """Stripe endpoint a webhook arrived on."""

    PLATFORM = "platform", "Platform"
    CONNECT = "connect", "Connect"


class ScheduledReleaseOutcome(models.TextChoices):
    """Result of firing a ScheduledRelease."""

    RELEASED = "released", "Released"
    SKIPPED = "skipped", "Skipped"
    FAILED = "failed", "Failed"


class ConnectAccountStatus(models.TextChoices):
    """Payout account status reported to freelancers."""

    NOT_CREATED = "not_created", "Not Created"
    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
