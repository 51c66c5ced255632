"""
Realtime publishers for pushing domain events to connected clients.

The marketplace core never talks to the socket layer directly. It depends on
the RealtimePublisher protocol, and the concrete publisher is installed once
per process (ChannelsRealtimePublisher by default) and swapped in tests.

Group naming:
    user_<user_id>    every socket a user has open
    order_<order_id>  sockets subscribed to an order's message room

Usage:
    from notifications.publishers import get_realtime_publisher

    publisher = get_realtime_publisher()
    publisher.publish_to_user(freelancer.id, "new-order", {"order_id": str(order.id)})

    # Tests
    set_realtime_publisher(RecordingPublisher())
    ...
    set_realtime_publisher(None)  # back to the default
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID


logger = logging.getLogger(__name__)


def user_group_name(user_id: UUID | str) -> str:
    """Channel group holding every socket of one user."""
    return f"user_{user_id}"


def order_group_name(order_id: UUID | str) -> str:
    """Channel group for an order's message room."""
    return f"order_{order_id}"


@runtime_checkable
class RealtimePublisher(Protocol):
    """
    Protocol for realtime event sinks.

    Implementations may raise on transport failure; callers that must not
    fail (state changes already committed) go through NotificationService,
    which logs and drops publisher errors.
    """

    def publish_to_user(
        self, user_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> None:
        """Send an event to every connection of one user."""
        ...

    def publish_to_order_room(
        self, order_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> None:
        """Send an event to every connection subscribed to an order room."""
        ...


class ChannelsRealtimePublisher:
    """
    RealtimePublisher backed by the Django Channels layer.

    Messages are dispatched with type "notify.event" and handled by
    NotificationConsumer.notify_event on the receiving side.
    """

    message_type = "notify.event"

    def _group_send(self, group: str, event: str, payload: dict[str, Any]) -> None:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning(
                "No channel layer configured, dropping realtime event",
                extra={"group": group, "event": event},
            )
            return

        async_to_sync(channel_layer.group_send)(
            group,
            {
                "type": self.message_type,
                "event": event,
                "payload": payload,
            },
        )

    def publish_to_user(
        self, user_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> None:
        self._group_send(user_group_name(user_id), event, payload)

    def publish_to_order_room(
        self, order_id: UUID | str, event: str, payload: dict[str, Any]
    ) -> None:
        self._group_send(order_group_name(order_id), event, payload)


# =============================================================================
# Publisher Registry
# =============================================================================

_publisher: RealtimePublisher | None = None


def get_realtime_publisher() -> RealtimePublisher:
    """Return the installed publisher, creating the Channels default lazily."""
    global _publisher
    if _publisher is None:
        _publisher = ChannelsRealtimePublisher()
    return _publisher


def set_realtime_publisher(publisher: RealtimePublisher | None) -> None:
    """Install a publisher (None restores the Channels default on next use)."""
    global _publisher
    _publisher = publisher
