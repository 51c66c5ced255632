"""
Payments app: escrow-style settlement for marketplace orders.

This app handles:
- Payment ledger entries and Stripe PaymentIntent creation
- Webhook-driven capture confirmation
- Releases to freelancers' connected accounts (admin and automatic)
- Connect onboarding

Related apps:
    - orders: Order lifecycle; completion schedules the automatic release
    - notifications: payment-received / payment-released events

Usage:
    from payments.services import PaymentService, ReleaseService

    initiated = PaymentService.initiate_payment(client, order_id)
    ReleaseService.release_payment(payment_id, triggered_by="auto_release")
"""
