"""
WebhookEvent model: the intake log of Stripe webhook deliveries.

Stripe delivers at least once and in no particular order. Every verified
delivery is stored here before it is handled, keyed by the Stripe event id,
so a redelivery finds the existing row instead of running the handler twice.

Usage:
    from payments.models import WebhookEvent
    from payments.state_machines import WebhookEventStatus, WebhookSource

    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id="evt_1234567890",
        defaults={
            "event_type": "payment_intent.succeeded",
            "source": WebhookSource.PLATFORM,
            "payload": webhook_payload,
        },
    )
    if not created and event.is_processed:
        return  # redelivery
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus, WebhookSource


# Failed events are retried by retry_failed_webhooks until this many attempts
MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One Stripe event, stored for idempotent processing and audit.

    Processing Flow:
        1. Endpoint verifies the signature
        2. get_or_create by stripe_event_id
        3. Already PROCESSED -> acknowledge without work
        4. Otherwise queue process_webhook_event
        5. Task marks PROCESSING, dispatches to the handler for event_type
        6. Handler result marks PROCESSED or FAILED

    Fields:
        stripe_event_id: Stripe Event ID (evt_xxx), unique
        event_type: Stripe event type
        source: Platform or Connect endpoint
        payload: Full event JSON
        status: Processing status
        processed_at: When processing succeeded
        error_message: Last processing error
        retry_count: Processing attempts so far
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx), unique for idempotency",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
    )
    source = models.CharField(
        max_length=20,
        choices=WebhookSource.choices,
        default=WebhookSource.PLATFORM,
        help_text="Endpoint the event arrived on (platform or connect)",
    )
    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )
    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )
    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="webhook_status_created_idx",
            ),
            models.Index(
                fields=["status", "retry_count"],
                name="webhook_status_retry_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < MAX_WEBHOOK_RETRIES
        )

    @property
    def data_object(self) -> dict:
        """The event's data.object, or an empty dict for malformed payloads."""
        data = self.payload.get("data") if isinstance(self.payload, dict) else None
        obj = data.get("object") if isinstance(data, dict) else None
        return obj if isinstance(obj, dict) else {}

    # The mark_* helpers do not save; callers save with update_fields.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
