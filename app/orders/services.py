"""
Order services: creation, lookup, lifecycle transitions and messaging.

Every status change locks the order row, runs the django-fsm transition
and saves status and side-effect fields together. Notifications go out
only after the transaction commits.

Usage:
    from orders.services import OrderService

    order = OrderService.create_order(client, service_id, "Logo in SVG")
    order = OrderService.update_status(freelancer, order.id, OrderStatus.ACCEPTED)
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import Max, Q
from django_fsm import can_proceed

from core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService
from notifications import events
from notifications.services import NotificationService
from orders.models import Order, OrderMessage, OrderStatus, Service
from payments.locks import check_version
from payments.models import ScheduledRelease

if TYPE_CHECKING:
    from uuid import UUID

    from django.db.models import QuerySet

    from authentication.models import User


# Target status -> (transition method name, only the freelancer may trigger it)
STATUS_TRANSITIONS: dict[str, tuple[str, bool]] = {
    OrderStatus.ACCEPTED: ("accept", True),
    OrderStatus.IN_PROGRESS: ("start", True),
    OrderStatus.COMPLETED: ("complete", True),
    OrderStatus.CANCELLED: ("cancel", False),
}


def _order_not_found(order_id) -> NotFoundError:
    return NotFoundError(
        "Order not found",
        error_code="ORDER_NOT_FOUND",
        details={"order_id": str(order_id)},
    )


class OrderService(BaseService):
    """Order creation, visibility and lifecycle transitions."""

    @classmethod
    def create_order(
        cls, client: User, service_id: UUID | str, requirements: str
    ) -> Order:
        """
        Place an order for a service.

        The order starts pending and unpaid with the service's current
        price copied onto it; later price changes do not affect it.

        Raises:
            PermissionDeniedError: Caller is not a client (or admin)
            ValidationError: Blank requirements, or ordering own service
            NotFoundError: Service missing or inactive
        """
        if not (client.is_client or client.is_platform_admin):
            raise PermissionDeniedError("Only clients can place orders")

        requirements = (requirements or "").strip()
        if not requirements:
            raise ValidationError(
                "Requirements are required",
                details={"field": "requirements"},
            )

        service = Service.objects.filter(pk=service_id, is_active=True).first()
        if service is None:
            raise NotFoundError(
                "Service not found",
                error_code="SERVICE_NOT_FOUND",
                details={"service_id": str(service_id)},
            )

        if service.freelancer_id == client.pk:
            raise ValidationError(
                "You cannot order your own service",
                error_code="OWN_SERVICE",
            )

        with cls.atomic():
            order = Order.objects.create(
                service=service,
                client=client,
                freelancer_id=service.freelancer_id,
                requirements=requirements,
                price=service.price,
            )
            NotificationService.notify_user_on_commit(
                order.freelancer_id,
                events.NEW_ORDER,
                {
                    "order_id": str(order.id),
                    "message": "You have received a new order",
                },
            )

        cls.get_logger().info(
            "Order created",
            extra={
                "order_id": str(order.id),
                "service_id": str(service.id),
                "client_id": str(client.pk),
                "price": str(order.price),
            },
        )
        return order

    @classmethod
    def list_orders(cls, user: User, status: str | None = None) -> QuerySet[Order]:
        """Orders where the user is client or freelancer, newest first."""
        queryset = (
            Order.objects.filter(Q(client=user) | Q(freelancer=user))
            .select_related("service", "client", "freelancer")
            .order_by("-created_at")
        )
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    @classmethod
    def get_order(cls, user: User, order_id: UUID | str) -> Order:
        """
        Fetch an order visible to the user.

        Raises:
            NotFoundError: No such order
            PermissionDeniedError: User is neither a party nor an admin
        """
        order = (
            Order.objects.select_related("service", "client", "freelancer")
            .filter(pk=order_id)
            .first()
        )
        if order is None:
            raise _order_not_found(order_id)
        if not (order.is_party(user) or user.is_platform_admin):
            raise PermissionDeniedError("Not authorized to view this order")
        return order

    @classmethod
    def update_status(
        cls,
        user: User,
        order_id: UUID | str,
        new_status: str,
        expected_version: int | None = None,
    ) -> Order:
        """
        Move an order to a new lifecycle status.

        Completing an order also persists its ScheduledRelease in the same
        transaction, so the automatic payout survives process restarts.

        When expected_version is given the update is rejected if the order
        changed since the caller read it.

        Raises:
            ValidationError: Unknown status value
            NotFoundError: No such order
            PermissionDeniedError: Caller is not a party, or a client tried
                a freelancer-only transition
            InvalidStateTransitionError: Transition not allowed from the
                current status
            StaleRecordError: expected_version no longer matches
        """
        if new_status not in OrderStatus.values:
            raise ValidationError(
                f"Invalid status '{new_status}'",
                error_code="INVALID_STATUS",
                details={"allowed": list(OrderStatus.values)},
            )

        with cls.atomic():
            if expected_version is not None:
                order = check_version(Order, order_id, expected_version)
            else:
                order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                raise _order_not_found(order_id)

            if not order.is_party(user):
                raise PermissionDeniedError("Not authorized to update this order")

            current_status = order.status
            transition_name, freelancer_only = STATUS_TRANSITIONS.get(
                new_status, (None, False)
            )
            if freelancer_only and user.pk != order.freelancer_id:
                raise PermissionDeniedError(
                    "Only the assigned freelancer can perform this action"
                )

            transition_method = (
                getattr(order, transition_name) if transition_name else None
            )
            if transition_method is None or not can_proceed(transition_method):
                raise InvalidStateTransitionError(
                    f"Cannot change order status from '{current_status}' to '{new_status}'",
                    details={
                        "current_status": current_status,
                        "target_status": new_status,
                    },
                )

            transition_method()
            order.save()

            if order.status == OrderStatus.COMPLETED:
                cls._schedule_release(order)

            payload = {
                "order_id": str(order.id),
                "status": order.status,
                "updated_by": str(user.pk),
            }
            NotificationService.notify_user_on_commit(
                order.client_id, events.ORDER_STATUS_UPDATED, payload
            )
            NotificationService.notify_user_on_commit(
                order.freelancer_id, events.ORDER_STATUS_UPDATED, payload
            )

        cls.get_logger().info(
            "Order status updated",
            extra={
                "order_id": str(order.id),
                "from_status": current_status,
                "to_status": order.status,
                "user_id": str(user.pk),
            },
        )
        return order

    @classmethod
    def _schedule_release(cls, order: Order) -> ScheduledRelease:
        due_at = order.completion_date + timedelta(
            hours=settings.AUTO_RELEASE_DELAY_HOURS
        )
        scheduled, _ = ScheduledRelease.objects.update_or_create(
            order=order,
            defaults={
                "due_at": due_at,
                "processed_at": None,
                "outcome": None,
                "last_error": "",
            },
        )
        cls.get_logger().info(
            "Scheduled automatic payment release",
            extra={"order_id": str(order.id), "due_at": due_at.isoformat()},
        )
        return scheduled


class OrderMessageService(BaseService):
    """Append-only messaging between the parties of an order."""

    @classmethod
    def add_message(
        cls, user: User, order_id: UUID | str, content: str
    ) -> OrderMessage:
        """
        Append a message to an order's thread.

        The message is broadcast to the order room and the other party gets
        a short preview once the message is committed.

        Raises:
            ValidationError: Blank content
            NotFoundError: No such order
            PermissionDeniedError: User is not a party
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError(
                "Message content cannot be empty",
                error_code="EMPTY_CONTENT",
            )

        with cls.atomic():
            # Row lock serialises sequence assignment per order
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                raise _order_not_found(order_id)
            if not order.is_party(user):
                raise PermissionDeniedError(
                    "Not authorized to send messages on this order"
                )

            last_sequence = order.messages.aggregate(last=Max("sequence"))["last"]
            message = OrderMessage.objects.create(
                order=order,
                sender=user,
                content=content,
                sequence=(last_sequence or 0) + 1,
            )

            NotificationService.broadcast_to_order_on_commit(
                order.id,
                events.NEW_MESSAGE,
                {
                    "order_id": str(order.id),
                    "message_id": message.pk,
                    "sender_id": str(user.pk),
                    "content": message.content,
                    "sequence": message.sequence,
                    "created_at": message.created_at.isoformat(),
                },
            )
            NotificationService.notify_user_on_commit(
                order.other_party_id(user),
                events.NEW_MESSAGE,
                {
                    "order_id": str(order.id),
                    "sender_id": str(user.pk),
                    "sender_name": user.get_full_name(),
                    "preview": build_preview(message.content),
                },
            )

        cls.get_logger().debug(
            "Order message added",
            extra={
                "order_id": str(order.id),
                "message_id": message.pk,
                "sequence": message.sequence,
            },
        )
        return message

    @classmethod
    def list_messages(cls, user: User, order_id: UUID | str) -> QuerySet[OrderMessage]:
        """Messages of an order in sequence order; parties and admins only."""
        order = OrderService.get_order(user, order_id)
        return order.messages.select_related("sender").order_by("sequence")


def build_preview(content: str) -> str:
    """First characters of a message, with an ellipsis when truncated."""
    if len(content) <= events.MESSAGE_PREVIEW_LENGTH:
        return content
    return content[: events.MESSAGE_PREVIEW_LENGTH] + "..."
