"""
Payment admin configuration.

Payments, webhook events and scheduled releases are read-only in the admin:
their state only changes through services. The one write path is the
"release" action, which goes through ReleaseService like the API does.
"""

from django.contrib import admin, messages

from core.exceptions import BaseApplicationError
from payments.models import Payment, ScheduledRelease, WebhookEvent
from payments.services import ReleaseService

__all__ = [
    "PaymentAdmin",
    "ScheduledReleaseAdmin",
    "WebhookEventAdmin",
]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Ledger entries with a release action for captured payments."""

    list_display = [
        "id",
        "order",
        "amount_display",
        "status",
        "payout_status",
        "released_at",
        "created_at",
    ]
    list_filter = ["status", "payout_status", "currency"]
    search_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_charge_id",
        "stripe_transfer_id",
        "client__email",
        "freelancer__email",
    ]
    readonly_fields = [
        "id",
        "order",
        "client",
        "freelancer",
        "amount_cents",
        "platform_fee_cents",
        "freelancer_amount_cents",
        "currency",
        "status",
        "payout_status",
        "stripe_payment_intent_id",
        "stripe_charge_id",
        "stripe_transfer_id",
        "released_at",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    actions = ["release_payments"]

    fieldsets = (
        (None, {"fields": ("id", "order", "client", "freelancer")}),
        (
            "Amounts",
            {
                "fields": (
                    "amount_cents",
                    "platform_fee_cents",
                    "freelancer_amount_cents",
                    "currency",
                ),
            },
        ),
        ("Status", {"fields": ("status", "payout_status", "released_at")}),
        (
            "Stripe",
            {
                "fields": (
                    "stripe_payment_intent_id",
                    "stripe_charge_id",
                    "stripe_transfer_id",
                ),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("version", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payment) -> str:
        return f"{obj.amount} {obj.currency.upper()}"

    @admin.action(description="Release selected payments to freelancers")
    def release_payments(self, request, queryset):
        released = 0
        for payment in queryset:
            try:
                ReleaseService.release_payment(
                    payment.id, triggered_by=f"admin:{request.user.pk}"
                )
            except BaseApplicationError as e:
                self.message_user(
                    request,
                    f"Payment {payment.id}: {e.message}",
                    level=messages.ERROR,
                )
            else:
                released += 1
        if released:
            self.message_user(request, f"Released {released} payment(s).")

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Webhook events are immutable once received."""

    list_display = [
        "stripe_event_id",
        "event_type",
        "source",
        "status",
        "retry_count",
        "created_at",
        "processed_at",
    ]
    list_filter = ["status", "source", "event_type"]
    search_fields = ["stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "stripe_event_id",
        "event_type",
        "source",
        "payload",
        "status",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False


@admin.register(ScheduledRelease)
class ScheduledReleaseAdmin(admin.ModelAdmin):
    list_display = [
        "order",
        "due_at",
        "processed_at",
        "outcome",
        "attempts",
    ]
    list_filter = ["outcome"]
    search_fields = ["order__id"]
    readonly_fields = [
        "order",
        "due_at",
        "processed_at",
        "outcome",
        "attempts",
        "last_error",
        "created_at",
        "updated_at",
    ]
    ordering = ["due_at"]

    def has_add_permission(self, request) -> bool:
        return False
