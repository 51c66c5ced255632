"""
WebSocket consumer for realtime marketplace notifications.

Consumers:
    NotificationConsumer: One socket per client session

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"]. Anonymous
    connections are closed with code 4001.

Channel Groups:
    user_<user_id>    joined on connect, receives personal notifications
    order_<order_id>  joined on request, receives an order's room events

Message Types (from client):
    - subscribe_order: {"type": "subscribe_order", "order_id": "<uuid>"}
    - unsubscribe_order: {"type": "unsubscribe_order", "order_id": "<uuid>"}

Message Types (to client):
    - {"type": "<event name>", "payload": {...}}
    - subscribed / unsubscribed acknowledgements
    - error
"""

from __future__ import annotations

import logging
from uuid import UUID

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser
from django.db.models import Q

from notifications.publishers import order_group_name, user_group_name
from orders.models import Order

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    Delivers events published through ChannelsRealtimePublisher.

    Attributes:
        user_group: The personal group joined on connect
        order_groups: Order room groups this socket subscribed to
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_group: str | None = None
        self.order_groups: set[str] = set()

    async def connect(self):
        user = self.scope.get("user")

        if not user or isinstance(user, AnonymousUser):
            logger.warning("Rejected unauthenticated notification socket")
            await self.close(code=4001)
            return

        self.user_group = user_group_name(user.id)
        await self.channel_layer.group_add(self.user_group, self.channel_name)
        await self.accept()
        logger.info("Notification socket connected", extra={"user_id": str(user.id)})

    async def disconnect(self, close_code):
        groups = list(self.order_groups)
        if self.user_group:
            groups.append(self.user_group)
        for group in groups:
            await self.channel_layer.group_discard(group, self.channel_name)
        self.order_groups.clear()

    async def receive_json(self, content):
        """
        Handle incoming control messages.

        Args:
            content: Parsed JSON message from client
        """
        message_type = content.get("type")

        if message_type == "subscribe_order":
            await self._handle_subscribe(content.get("order_id"))
        elif message_type == "unsubscribe_order":
            await self._handle_unsubscribe(content.get("order_id"))
        else:
            await self._send_error(f"Unknown message type: {message_type}")

    async def _handle_subscribe(self, raw_order_id):
        order_id = self._parse_order_id(raw_order_id)
        if order_id is None:
            await self._send_error("A valid order_id is required")
            return

        user = self.scope["user"]
        if not await self._can_access_order(user, order_id):
            logger.warning(
                "User tried to join an order room they are not part of",
                extra={"user_id": str(user.id), "order_id": str(order_id)},
            )
            await self._send_error("Order not found")
            return

        group = order_group_name(order_id)
        await self.channel_layer.group_add(group, self.channel_name)
        self.order_groups.add(group)
        await self.send_json({"type": "subscribed", "order_id": str(order_id)})

    async def _handle_unsubscribe(self, raw_order_id):
        order_id = self._parse_order_id(raw_order_id)
        if order_id is None:
            await self._send_error("A valid order_id is required")
            return

        group = order_group_name(order_id)
        if group in self.order_groups:
            await self.channel_layer.group_discard(group, self.channel_name)
            self.order_groups.discard(group)
        await self.send_json({"type": "unsubscribed", "order_id": str(order_id)})

    async def notify_event(self, event):
        """
        Handle notify.event messages from the channel layer.

        Forwards the event name and payload to the client unchanged.
        """
        await self.send_json({"type": event["event"], "payload": event["payload"]})

    async def _send_error(self, message: str):
        await self.send_json({"type": "error", "message": message})

    @staticmethod
    def _parse_order_id(raw_order_id) -> UUID | None:
        try:
            return UUID(str(raw_order_id))
        except (TypeError, ValueError):
            return None

    @database_sync_to_async
    def _can_access_order(self, user, order_id: UUID) -> bool:
        """Parties of the order and platform admins may join its room."""
        if user.is_platform_admin:
            return Order.objects.filter(id=order_id).exists()
        return (
            Order.objects.filter(id=order_id)
            .filter(Q(client=user) | Q(freelancer=user))
            .exists()
        )
