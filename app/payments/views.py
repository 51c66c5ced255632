"""
DRF views for payments app.

Endpoints:
    POST /api/v1/payments/create-payment-intent/ - Start payment (client)
    GET  /api/v1/payments/order/{order_id}/      - Order's payment (parties, admin)
    POST /api/v1/payments/create-connect-account/ - Start onboarding (freelancer)
    GET  /api/v1/payments/account-status/        - Onboarding status (freelancer)
    GET  /api/v1/payments/                       - List payments (admin)
    GET  /api/v1/payments/{payment_id}/          - Payment detail (admin)
    POST /api/v1/payments/{payment_id}/release/  - Release payment (admin)

Webhook endpoints live in payments.webhooks.views.

Views validate input and delegate to services; domain errors raised by the
services are rendered by core.exception_handler.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsClient, IsFreelancer, IsPlatformAdmin
from payments.serializers import (
    AccountStatusSerializer,
    AdminPaymentSerializer,
    ConnectAccountResponseSerializer,
    CreatePaymentIntentSerializer,
    PaymentFilterSerializer,
    PaymentIntentResponseSerializer,
    PaymentSerializer,
)
from payments.services import ConnectService, PaymentService, ReleaseService


class CreatePaymentIntentView(APIView):
    """
    Create (or resume) the payment intent for an order.

    POST /api/v1/payments/create-payment-intent/

    Request body:
        {"order_id": "<uuid>"}

    Returns:
        {"client_secret": "pi_..._secret_...", "payment_id": "<uuid>"}
    """

    permission_classes = [IsAuthenticated, IsClient]

    @extend_schema(
        request=CreatePaymentIntentSerializer,
        responses={
            200: PaymentIntentResponseSerializer,
            403: OpenApiResponse(description="Not the order's client"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order cancelled or already paid"),
            502: OpenApiResponse(description="Payment provider error"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        initiated = PaymentService.initiate_payment(
            request.user, serializer.validated_data["order_id"]
        )
        output = PaymentIntentResponseSerializer(
            {
                "client_secret": initiated.client_secret,
                "payment_id": initiated.payment.id,
            }
        )
        return Response(output.data, status=status.HTTP_200_OK)


class OrderPaymentView(APIView):
    """
    Latest payment of an order.

    GET /api/v1/payments/order/{order_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        responses={
            200: PaymentSerializer,
            403: OpenApiResponse(description="Not a party to the order"),
            404: OpenApiResponse(description="Order or payment not found"),
        },
        tags=["Payments"],
    )
    def get(self, request, order_id):
        payment = PaymentService.get_order_payment(request.user, order_id)
        return Response(PaymentSerializer(payment).data)


class CreateConnectAccountView(APIView):
    """
    Create the freelancer's payout account and return an onboarding link.

    POST /api/v1/payments/create-connect-account/
    """

    permission_classes = [IsAuthenticated, IsFreelancer]

    @extend_schema(
        request=None,
        responses={
            201: ConnectAccountResponseSerializer,
            400: OpenApiResponse(description="Payout account already exists"),
            502: OpenApiResponse(description="Payment provider error"),
        },
        tags=["Payouts"],
    )
    def post(self, request):
        onboarding = ConnectService.create_connect_account(request.user)
        output = ConnectAccountResponseSerializer(
            {
                "account_id": onboarding.account_id,
                "onboarding_url": onboarding.onboarding_url,
            }
        )
        return Response(output.data, status=status.HTTP_201_CREATED)


class AccountStatusView(APIView):
    """
    Onboarding status of the freelancer's payout account.

    GET /api/v1/payments/account-status/
    """

    permission_classes = [IsAuthenticated, IsFreelancer]

    @extend_schema(responses={200: AccountStatusSerializer}, tags=["Payouts"])
    def get(self, request):
        state = ConnectService.get_account_status(request.user)
        output = AccountStatusSerializer(
            {
                "status": state.status,
                "account_id": state.account_id,
                "charges_enabled": state.charges_enabled,
                "payouts_enabled": state.payouts_enabled,
            }
        )
        return Response(output.data)


class PaymentListView(generics.ListAPIView):
    """
    All payments, newest first, for platform admins.

    GET /api/v1/payments/?status=succeeded&payout_status=pending
    """

    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    serializer_class = AdminPaymentSerializer

    def get_queryset(self):
        filters = PaymentFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return PaymentService.list_payments(**filters.validated_data)

    @extend_schema(
        parameters=[
            OpenApiParameter("status", str, description="Filter by payment status"),
            OpenApiParameter(
                "payout_status", str, description="Filter by payout status"
            ),
        ],
        tags=["Payments (admin)"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class PaymentDetailView(APIView):
    """GET /api/v1/payments/{payment_id}/"""

    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    @extend_schema(
        responses={
            200: AdminPaymentSerializer,
            404: OpenApiResponse(description="Payment not found"),
        },
        tags=["Payments (admin)"],
    )
    def get(self, request, payment_id):
        payment = PaymentService.get_payment(payment_id)
        return Response(AdminPaymentSerializer(payment).data)


class ReleasePaymentView(APIView):
    """
    Release a captured payment to the freelancer.

    POST /api/v1/payments/{payment_id}/release/

    Uses the same executor as the automatic release; calling it twice
    never transfers twice.
    """

    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    @extend_schema(
        request=None,
        responses={
            200: AdminPaymentSerializer,
            400: OpenApiResponse(description="Freelancer has no payout account"),
            404: OpenApiResponse(description="Payment not found"),
            409: OpenApiResponse(description="Payment cannot be released"),
            502: OpenApiResponse(description="Payment provider error"),
        },
        tags=["Payments (admin)"],
    )
    def post(self, request, payment_id):
        payment = ReleaseService.release_payment(
            payment_id, triggered_by=f"admin:{request.user.pk}"
        )
        return Response(AdminPaymentSerializer(payment).data)
