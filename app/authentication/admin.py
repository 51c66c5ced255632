"""
Django admin configuration for the marketplace User.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Email-based user admin with marketplace role and payout account."""

    list_display = (
        "email",
        "name",
        "role",
        "payout_enabled",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "payout_enabled", "is_active", "is_staff")
    search_fields = ("email", "name", "stripe_connect_id")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password", "name")}),
        ("Marketplace", {"fields": ("role", "stripe_connect_id", "payout_enabled")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        ("Permissions", {"fields": ("groups", "user_permissions")}),
        ("Important dates", {"fields": ("date_joined", "last_login")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "role", "password1", "password2"),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login")
