"""
ScheduledRelease model: the durable timer behind automatic payouts.

A row is written in the same transaction that completes an order. The
release sweep (payments.workers.release_scheduler) picks up rows whose
due_at has passed and fires them once; whether the payment is actually
releasable is decided at fire time, not when the row is written.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel

from payments.state_machines import ScheduledReleaseOutcome


class ScheduledReleaseQuerySet(models.QuerySet):
    def due(self, now=None):
        """Unprocessed rows whose due time has passed, oldest first."""
        return self.filter(
            processed_at__isnull=True,
            due_at__lte=now or timezone.now(),
        ).order_by("due_at")


class ScheduledRelease(BaseModel):
    """
    Pending automatic release of an order's payment.

    Fields:
        order: Completed order (one row per order)
        due_at: When the release becomes eligible
        processed_at: When the row was fired (null until then)
        outcome: released, skipped or failed
        attempts: Number of times the release was attempted
        last_error: Error message of the last failed attempt
    """

    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="scheduled_release",
        help_text="Order whose payment will be released",
    )
    due_at = models.DateTimeField(
        db_index=True,
        help_text="When the automatic release becomes eligible",
    )
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the release was fired",
    )
    outcome = models.CharField(
        max_length=20,
        choices=ScheduledReleaseOutcome.choices,
        null=True,
        blank=True,
        help_text="Result of firing the release",
    )
    attempts = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of release attempts",
    )
    last_error = models.TextField(
        blank=True,
        default="",
        help_text="Error from the last failed attempt",
    )

    objects = ScheduledReleaseQuerySet.as_manager()

    class Meta:
        ordering = ["due_at"]
        verbose_name = "Scheduled Release"
        verbose_name_plural = "Scheduled Releases"
        indexes = [
            models.Index(
                fields=["processed_at", "due_at"],
                name="release_processed_due_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"ScheduledRelease({self.order_id}, due {self.due_at:%Y-%m-%d %H:%M})"

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    def mark_processed(self, outcome: str, error: str = "") -> None:
        """Record the outcome of a fire. Does not save."""
        self.processed_at = timezone.now()
        self.outcome = outcome
        self.last_error = error
