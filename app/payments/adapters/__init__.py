"""
Payment adapters for external services.

StripeAdapter is the single gateway to Stripe; services obtain it through
get_stripe_adapter() so tests can install a fake with set_stripe_adapter().

Usage:
    from payments.adapters import get_stripe_adapter

    adapter = get_stripe_adapter()
    intent = adapter.retrieve_payment_intent("pi_123", expand=["latest_charge"])
"""

from payments.adapters.stripe_adapter import (
    AccountLinkResult,
    AccountResult,
    ChargeResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
    TransferResult,
    get_stripe_adapter,
    is_retryable_stripe_error,
    set_stripe_adapter,
)

__all__ = [
    "AccountLinkResult",
    "AccountResult",
    "ChargeResult",
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "StripeAdapter",
    "TransferResult",
    "get_stripe_adapter",
    "is_retryable_stripe_error",
    "set_stripe_adapter",
]
