"""
URL configuration for the marketplace service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/orders/                - Order endpoints
        (root)                     - Create (client) / list own orders
        {id}/                      - Order detail
        {id}/status/               - Status transition (PUT)
        {id}/messages/             - Message list/send
    /api/v1/payments/              - Payment endpoints
        create-payment-intent/     - Start payment for an order (client)
        webhook/                   - Stripe platform webhook (POST)
        connect-webhook/           - Stripe Connect webhook (POST)
        create-connect-account/    - Start payout onboarding (freelancer)
        account-status/            - Payout account status (freelancer)
        order/{order_id}/          - Payment of an order (parties)
        (root)                     - Payment list (admin)
        {id}/                      - Payment detail (admin)
        {id}/release/              - Release funds to freelancer (admin)

WebSocket routes live in notifications/routing.py.

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Orders
    path("orders/", include("orders.urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Admin"
admin.site.site_title = "Marketplace Admin Portal"
admin.site.index_title = "Orders, payments and payouts"
