"""
Pytest fixtures for Stripe adapter tests.

Responses are real stripe.StripeObject instances built with construct_from,
so attribute access and nested objects behave like SDK responses.
The SDK resource classes are patched; no request leaves the process.
"""

from typing import Any
from unittest.mock import patch

import pytest
import stripe


def stripe_object(data: dict[str, Any]) -> stripe.StripeObject:
    return stripe.StripeObject.construct_from(data, "sk_test_dummy")


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@pytest.fixture
def make_charge():
    def _create(
        id: str = "ch_test123",
        amount: int = 10000,
        currency: str = "eur",
        payment_intent: str = "pi_test123",
    ) -> dict[str, Any]:
        return {
            "id": id,
            "object": "charge",
            "amount": amount,
            "currency": currency,
            "status": "succeeded",
            "payment_intent": payment_intent,
        }

    return _create


@pytest.fixture
def make_payment_intent():
    def _create(
        id: str = "pi_test123",
        status: str = "requires_payment_method",
        amount: int = 10000,
        currency: str = "eur",
        latest_charge: Any = None,
        metadata: dict | None = None,
    ) -> stripe.StripeObject:
        return stripe_object(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": f"{id}_secret_abc",
                "latest_charge": latest_charge,
                "metadata": metadata or {},
            }
        )

    return _create


# =============================================================================
# Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    def _create(decline_code: str | None = "generic_decline") -> stripe.CardError:
        error = stripe.CardError(
            message="Your card was declined.",
            param=None,
            code="card_declined",
        )
        error.decline_code = decline_code
        return error

    return _create


@pytest.fixture
def invalid_request_error():
    def _create(
        message: str = "No such payment_intent: 'pi_missing'",
        param: str | None = "intent",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


# =============================================================================
# Patched SDK Resources
# =============================================================================


@pytest.fixture
def mock_stripe_payment_intent(make_payment_intent):
    with patch("stripe.PaymentIntent") as mock:
        mock.create.return_value = make_payment_intent()
        mock.retrieve.return_value = make_payment_intent()
        yield mock


@pytest.fixture
def mock_stripe_charge(make_charge):
    with patch("stripe.Charge") as mock:
        mock.retrieve.return_value = stripe_object(make_charge())
        yield mock


@pytest.fixture
def mock_stripe_transfer():
    with patch("stripe.Transfer") as mock:
        mock.create.return_value = stripe_object(
            {
                "id": "tr_test123",
                "object": "transfer",
                "amount": 9000,
                "currency": "eur",
                "destination": "acct_dest123",
                "metadata": {"payment_id": "p1"},
            }
        )
        yield mock


@pytest.fixture
def mock_stripe_account():
    with patch("stripe.Account") as account_mock, patch(
        "stripe.AccountLink"
    ) as link_mock:
        account_mock.create.return_value = stripe_object(
            {"id": "acct_new123", "object": "account", "charges_enabled": False}
        )
        account_mock.retrieve.return_value = stripe_object(
            {
                "id": "acct_new123",
                "object": "account",
                "charges_enabled": True,
                "payouts_enabled": True,
                "details_submitted": True,
            }
        )
        link_mock.create.return_value = stripe_object(
            {
                "object": "account_link",
                "url": "https://connect.stripe.com/setup/e/acct_new123/abc",
                "expires_at": 1700000000,
            }
        )
        yield account_mock, link_mock
