"""
Order admin configuration.

Order status is an FSM field and stays read-only here; lifecycle changes go
through OrderService.
"""

from django.contrib import admin

from orders.models import Order, OrderMessage, Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ["title", "freelancer", "price", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["title", "freelancer__email"]
    ordering = ["-created_at"]


class OrderMessageInline(admin.TabularInline):
    model = OrderMessage
    extra = 0
    fields = ["sequence", "sender", "content", "created_at"]
    readonly_fields = fields
    ordering = ["sequence"]

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "service",
        "client",
        "freelancer",
        "status",
        "payment_status",
        "price",
        "created_at",
    ]
    list_filter = ["status", "payment_status"]
    search_fields = ["id", "client__email", "freelancer__email", "service__title"]
    readonly_fields = [
        "id",
        "service",
        "client",
        "freelancer",
        "status",
        "payment_status",
        "requirements",
        "price",
        "start_date",
        "completion_date",
        "is_reviewable",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    inlines = [OrderMessageInline]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
