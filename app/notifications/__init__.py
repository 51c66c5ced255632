"""
Notifications app for realtime delivery of marketplace events.

This app provides:
- RealtimePublisher protocol and the Channels-backed default publisher
- NotificationService, the fire-and-forget entry point used by the domain
- NotificationConsumer and JWT middleware for the ws/notifications/ socket

Usage:
    from notifications import events
    from notifications.services import NotificationService

    NotificationService.notify_user(user.id, events.PAYMENT_RELEASED, {...})
"""
