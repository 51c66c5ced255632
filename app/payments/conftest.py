"""
Pytest fixtures for payment tests.

Shared by every test package under payments/. The stripe_adapter
fixture installs FakeStripeAdapter through set_stripe_adapter, so services
and workers never reach the SDK. Fixtures below build the common ledger
states on top of it.

Usage:
    def test_release(succeeded_payment, stripe_adapter):
        ReleaseService.release_payment(succeeded_payment.id)
        [transfer] = stripe_adapter.calls_to("create_transfer")
"""

import pytest

from orders.models import OrderPaymentStatus, OrderStatus
from orders.tests.factories import OrderFactory, ServiceFactory
from payments.adapters import set_stripe_adapter
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory
from payments.tests.fakes import FakeStripeAdapter


@pytest.fixture
def stripe_adapter():
    """Install a fresh FakeStripeAdapter for the test."""
    FakeStripeAdapter.reset()
    set_stripe_adapter(FakeStripeAdapter)
    yield FakeStripeAdapter
    set_stripe_adapter(None)
    FakeStripeAdapter.reset()


# =============================================================================
# Order Fixtures
# =============================================================================


@pytest.fixture
def order(db, client_user, payout_freelancer):
    """Accepted, unpaid order for a 100.00 service of an onboarded freelancer."""
    service = ServiceFactory(freelancer=payout_freelancer)
    return OrderFactory(service=service, client=client_user, status=OrderStatus.ACCEPTED)


@pytest.fixture
def completed_order(db, client_user, payout_freelancer):
    service = ServiceFactory(freelancer=payout_freelancer)
    return OrderFactory(
        service=service,
        client=client_user,
        status=OrderStatus.COMPLETED,
        payment_status=OrderPaymentStatus.PAID,
    )


# =============================================================================
# Payment State Fixtures
# =============================================================================


@pytest.fixture
def pending_payment(db, order, stripe_adapter):
    """Pending payment whose intent is known to the fake adapter."""
    payment = PaymentFactory(order=order)
    stripe_adapter.add_captured_intent(
        payment.stripe_payment_intent_id, payment.amount_cents
    )
    return payment


@pytest.fixture
def succeeded_payment(db, completed_order, stripe_adapter):
    """
    Captured, releasable payment for a completed order.

    The charge id is not stored yet; the fake adapter resolves it from the
    intent's latest charge.
    """
    payment = PaymentFactory(order=completed_order, status=PaymentStatus.SUCCEEDED)
    stripe_adapter.add_captured_intent(
        payment.stripe_payment_intent_id, payment.amount_cents
    )
    return payment
