"""
Payment services.

- PaymentService: intent creation and ledger lookups
- ReleaseService: transfers captured funds to the freelancer
- ConnectService: freelancer payout account onboarding

Usage:
    from payments.services import PaymentService, ReleaseService

    initiated = PaymentService.initiate_payment(client, order_id)
    payment = ReleaseService.release_payment(payment_id, triggered_by="admin:42")
"""

from payments.services.connect_service import (
    ConnectAccountState,
    ConnectOnboarding,
    ConnectService,
)
from payments.services.payment_service import (
    InitiatedPayment,
    PaymentService,
    round_half_up,
    split_amount,
    to_minor_units,
)
from payments.services.release_service import ReleaseService

__all__ = [
    "ConnectAccountState",
    "ConnectOnboarding",
    "ConnectService",
    "InitiatedPayment",
    "PaymentService",
    "ReleaseService",
    "round_half_up",
    "split_amount",
    "to_minor_units",
]
