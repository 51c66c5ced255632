"""
Payments app configuration.

This app provides the payment settlement pipeline:
- Payment ledger and intent creation
- Stripe webhook intake and reconciliation
- Release executor and the auto-release scheduler
- Connect onboarding for freelancers
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
