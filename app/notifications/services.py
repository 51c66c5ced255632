"""
Notification service: the single entry point the domain uses to notify users.

Notifications are fire-and-forget. They are published after the state change
they describe has been committed, and a failing publisher is logged and
ignored so it can never roll back or fail the business operation.

Usage:
    from notifications import events
    from notifications.services import NotificationService

    NotificationService.notify_user_on_commit(
        order.freelancer_id,
        events.NEW_ORDER,
        {"order_id": str(order.id), "message": "You have received a new order"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService

from notifications.publishers import get_realtime_publisher

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID


class NotificationService(BaseService):
    """Publishes domain events through the installed RealtimePublisher."""

    @classmethod
    def notify_user(
        cls, user_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> bool:
        """
        Publish an event to one user.

        Returns:
            True if the publisher accepted the event, False if it failed
        """
        try:
            get_realtime_publisher().publish_to_user(user_id, event, payload)
        except Exception:
            cls.get_logger().warning(
                "Failed to publish user notification",
                extra={"user_id": str(user_id), "event": event},
                exc_info=True,
            )
            return False

        cls.get_logger().debug(
            "Published user notification",
            extra={"user_id": str(user_id), "event": event},
        )
        return True

    @classmethod
    def broadcast_to_order(
        cls, order_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> bool:
        """Publish an event to an order's room. Failures are logged."""
        try:
            get_realtime_publisher().publish_to_order_room(order_id, event, payload)
        except Exception:
            cls.get_logger().warning(
                "Failed to publish order room event",
                extra={"order_id": str(order_id), "event": event},
                exc_info=True,
            )
            return False
        return True

    @classmethod
    def notify_user_on_commit(
        cls, user_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> None:
        """Defer notify_user until the surrounding transaction commits."""
        transaction.on_commit(lambda: cls.notify_user(user_id, event, payload))

    @classmethod
    def broadcast_to_order_on_commit(
        cls, order_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> None:
        """Defer broadcast_to_order until the surrounding transaction commits."""
        transaction.on_commit(
            lambda: cls.broadcast_to_order(order_id, event, payload)
        )
