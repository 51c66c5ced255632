"""
Tests for the payments REST API.

Services are exercised for real against FakeStripeAdapter; these tests
check routing, permissions, serialization and error rendering.
"""

from uuid import uuid4

import pytest
from django.urls import reverse

from authentication.tests.factories import ClientUserFactory
from payments.exceptions import StripeCardDeclinedError
from payments.models import Payment
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory


@pytest.fixture(autouse=True)
def _fake_stripe(stripe_adapter):
    return stripe_adapter


class TestCreatePaymentIntentView:
    url = "/api/v1/payments/create-payment-intent/"

    def test_returns_client_secret(self, auth_client, client_user, order):
        response = auth_client(client_user).post(
            self.url, {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 200
        payment = Payment.objects.get(order=order)
        assert response.data["payment_id"] == str(payment.id)
        assert response.data["client_secret"].startswith(payment.stripe_payment_intent_id)

    def test_repeat_request_returns_same_payment(self, auth_client, client_user, order):
        api = auth_client(client_user)

        first = api.post(self.url, {"order_id": str(order.id)}, format="json")
        second = api.post(self.url, {"order_id": str(order.id)}, format="json")

        assert first.data["payment_id"] == second.data["payment_id"]
        assert Payment.objects.filter(order=order).count() == 1

    def test_requires_authentication(self, api_client, order):
        response = api_client.post(self.url, {"order_id": str(order.id)}, format="json")

        assert response.status_code == 401

    def test_freelancers_cannot_pay(self, auth_client, order):
        response = auth_client(order.freelancer).post(
            self.url, {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 403

    def test_invalid_order_id(self, auth_client, client_user):
        response = auth_client(client_user).post(
            self.url, {"order_id": "not-a-uuid"}, format="json"
        )

        assert response.status_code == 400
        assert "order_id" in response.data

    def test_unknown_order(self, auth_client, client_user):
        response = auth_client(client_user).post(
            self.url, {"order_id": str(uuid4())}, format="json"
        )

        assert response.status_code == 404
        assert response.data["error_code"] == "ORDER_NOT_FOUND"

    def test_other_clients_order(self, auth_client, order):
        response = auth_client(ClientUserFactory()).post(
            self.url, {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 403
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_already_paid(self, auth_client, client_user, completed_order):
        response = auth_client(client_user).post(
            self.url, {"order_id": str(completed_order.id)}, format="json"
        )

        assert response.status_code == 409
        assert response.data["error_code"] == "PAYMENT_ALREADY_COMPLETED"

    def test_gateway_error_is_502(self, auth_client, client_user, order, stripe_adapter):
        stripe_adapter.create_intent_error = StripeCardDeclinedError(
            "Your card was declined.", decline_code="generic_decline"
        )

        response = auth_client(client_user).post(
            self.url, {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 502
        assert response.data["error_code"] == "CARD_DECLINED"
        assert response.data["details"]["decline_code"] == "generic_decline"


class TestOrderPaymentView:
    def url(self, order_id):
        return reverse("payments:order-payment", kwargs={"order_id": order_id})

    def test_party_sees_payment(self, auth_client, pending_payment):
        response = auth_client(pending_payment.order.freelancer).get(
            self.url(pending_payment.order_id)
        )

        assert response.status_code == 200
        assert response.data["id"] == str(pending_payment.id)
        assert response.data["amount"] == "100.00"
        assert response.data["platform_fee"] == "10.00"
        assert response.data["freelancer_amount"] == "90.00"
        assert "stripe_payment_intent_id" not in response.data

    def test_outsider_forbidden(self, auth_client, pending_payment, freelancer):
        response = auth_client(freelancer).get(self.url(pending_payment.order_id))

        assert response.status_code == 403

    def test_no_payment_yet(self, auth_client, client_user, order):
        response = auth_client(client_user).get(self.url(order.id))

        assert response.status_code == 404
        assert response.data["error_code"] == "PAYMENT_NOT_FOUND"


class TestConnectViews:
    def test_create_connect_account(self, auth_client, freelancer):
        response = auth_client(freelancer).post(reverse("payments:create-connect-account"))

        assert response.status_code == 201
        assert response.data["account_id"].startswith("acct_fake")
        assert response.data["onboarding_url"].startswith("https://")

    def test_create_twice_rejected(self, auth_client, payout_freelancer):
        response = auth_client(payout_freelancer).post(
            reverse("payments:create-connect-account")
        )

        assert response.status_code == 400
        assert response.data["error_code"] == "ACCOUNT_EXISTS"

    def test_clients_cannot_onboard(self, auth_client, client_user):
        response = auth_client(client_user).post(reverse("payments:create-connect-account"))

        assert response.status_code == 403

    def test_account_status(self, auth_client, freelancer):
        response = auth_client(freelancer).get(reverse("payments:account-status"))

        assert response.status_code == 200
        assert response.data == {
            "status": "not_created",
            "account_id": None,
            "charges_enabled": False,
            "payouts_enabled": False,
        }


class TestAdminPaymentViews:
    def test_list_requires_admin(self, auth_client, client_user):
        response = auth_client(client_user).get(reverse("payments:payment-list"))

        assert response.status_code == 403

    def test_list_filters_by_status(self, auth_client, admin_user, succeeded_payment):
        PaymentFactory()

        response = auth_client(admin_user).get(
            reverse("payments:payment-list"), {"status": "succeeded"}
        )

        assert response.status_code == 200
        assert response.data["count"] == 1
        [row] = response.data["results"]
        assert row["id"] == str(succeeded_payment.id)
        assert row["amount_cents"] == 10000

    def test_list_rejects_unknown_status(self, auth_client, admin_user):
        response = auth_client(admin_user).get(
            reverse("payments:payment-list"), {"status": "bogus"}
        )

        assert response.status_code == 400

    def test_detail(self, auth_client, admin_user, pending_payment):
        response = auth_client(admin_user).get(
            reverse("payments:payment-detail", kwargs={"payment_id": pending_payment.id})
        )

        assert response.status_code == 200
        assert response.data["stripe_payment_intent_id"] == (
            pending_payment.stripe_payment_intent_id
        )

    def test_detail_not_found(self, auth_client, admin_user):
        response = auth_client(admin_user).get(
            reverse("payments:payment-detail", kwargs={"payment_id": uuid4()})
        )

        assert response.status_code == 404

    def test_release(self, auth_client, admin_user, succeeded_payment):
        response = auth_client(admin_user).post(
            reverse("payments:release-payment", kwargs={"payment_id": succeeded_payment.id})
        )

        assert response.status_code == 200
        assert response.data["status"] == PaymentStatus.TRANSFERRED
        assert response.data["payout_status"] == "completed"
        assert response.data["stripe_transfer_id"].startswith("tr_fake")

    def test_release_twice_conflicts(self, auth_client, admin_user, succeeded_payment):
        api = auth_client(admin_user)
        url = reverse("payments:release-payment", kwargs={"payment_id": succeeded_payment.id})

        api.post(url)
        response = api.post(url)

        assert response.status_code == 409
        assert response.data["error_code"] == "INVALID_STATE_TRANSITION"

    def test_release_by_non_admin(self, auth_client, succeeded_payment):
        response = auth_client(succeeded_payment.order.freelancer).post(
            reverse("payments:release-payment", kwargs={"payment_id": succeeded_payment.id})
        )

        assert response.status_code == 403
