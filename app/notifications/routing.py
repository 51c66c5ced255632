"""
WebSocket URL routing for realtime notifications.

URL Patterns:
    ws/notifications/ - Personal notification stream; order rooms are
        joined over the same socket with subscribe_order messages

Authentication:
    JWT access token as query parameter: ?token=<jwt_access_token>
"""

from django.urls import path

from notifications import consumers

websocket_urlpatterns = [
    path(
        "ws/notifications/",
        consumers.NotificationConsumer.as_asgi(),
    ),
]
