"""
URL configuration for the orders app.

All routes are prefixed with /api/v1/orders/ when included in the main URLconf.
"""

from django.urls import path

from orders import views

app_name = "orders"

urlpatterns = [
    path("", views.OrderListCreateView.as_view(), name="order-list"),
    path("<uuid:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),
    path(
        "<uuid:order_id>/status/",
        views.OrderStatusView.as_view(),
        name="order-status",
    ),
    path(
        "<uuid:order_id>/messages/",
        views.OrderMessageListCreateView.as_view(),
        name="order-messages",
    ),
]
