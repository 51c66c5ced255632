"""
DRF serializers for payments app.

This module provides serializers for:
- Payment intent creation requests and responses
- Payment display (party and admin views)
- Connect onboarding responses

Usage:
    serializer = CreatePaymentIntentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    initiated = PaymentService.initiate_payment(
        request.user, serializer.validated_data["order_id"]
    )
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment
from payments.state_machines import ConnectAccountStatus, PaymentStatus, PayoutStatus


class CreatePaymentIntentSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(help_text="Order to pay for")


class PaymentIntentResponseSerializer(serializers.Serializer):
    """
    Response of create-payment-intent.

    The client_secret is passed to Stripe.js to confirm the payment; the
    order becomes paid when Stripe's webhook arrives, not when the browser
    reports success.
    """

    client_secret = serializers.CharField()
    payment_id = serializers.UUIDField()


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment as shown to the order's parties.

    Amounts are rendered in major units (e.g. "49.99").
    """

    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    platform_fee = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )
    freelancer_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = Payment
        fields = [
            "id",
            "order",
            "amount",
            "platform_fee",
            "freelancer_amount",
            "currency",
            "status",
            "payout_status",
            "released_at",
            "created_at",
        ]
        read_only_fields = fields


class AdminPaymentSerializer(PaymentSerializer):
    """Payment with gateway identifiers, for platform admins."""

    class Meta(PaymentSerializer.Meta):
        fields = PaymentSerializer.Meta.fields + [
            "client",
            "freelancer",
            "amount_cents",
            "platform_fee_cents",
            "freelancer_amount_cents",
            "stripe_payment_intent_id",
            "stripe_charge_id",
            "stripe_transfer_id",
            "version",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    payout_status = serializers.ChoiceField(
        choices=PayoutStatus.choices, required=False
    )


class ConnectAccountResponseSerializer(serializers.Serializer):
    account_id = serializers.CharField()
    onboarding_url = serializers.URLField()


class AccountStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ConnectAccountStatus.choices)
    account_id = serializers.CharField(allow_null=True)
    charges_enabled = serializers.BooleanField()
    payouts_enabled = serializers.BooleanField()
