"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_connect_webhook, stripe_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints (no authentication, signature verified)
    path("webhook/", stripe_webhook, name="stripe-webhook"),
    path("connect-webhook/", stripe_connect_webhook, name="stripe-connect-webhook"),
    # Client
    path(
        "create-payment-intent/",
        views.CreatePaymentIntentView.as_view(),
        name="create-payment-intent",
    ),
    path("order/<uuid:order_id>/", views.OrderPaymentView.as_view(), name="order-payment"),
    # Freelancer
    path(
        "create-connect-account/",
        views.CreateConnectAccountView.as_view(),
        name="create-connect-account",
    ),
    path("account-status/", views.AccountStatusView.as_view(), name="account-status"),
    # Admin
    path("", views.PaymentListView.as_view(), name="payment-list"),
    path("<uuid:payment_id>/", views.PaymentDetailView.as_view(), name="payment-detail"),
    path(
        "<uuid:payment_id>/release/",
        views.ReleasePaymentView.as_view(),
        name="release-payment",
    ),
]
