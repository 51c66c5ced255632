"""
DRF serializers for orders app.

Input serializers validate request shape only; business rules (own
service, allowed transitions) are enforced by orders.services.
"""

from __future__ import annotations

from rest_framework import serializers

from orders.models import Order, OrderMessage, OrderStatus


class UserSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)


class OrderCreateSerializer(serializers.Serializer):
    service_id = serializers.UUIDField(help_text="Service to order")
    requirements = serializers.CharField(
        help_text="What the client needs; cannot be changed later",
    )


class OrderStatusUpdateSerializer(serializers.Serializer):
    """
    Status change request.

    version is optional; when sent, the change is rejected with 409 if the
    order was modified since the client read it.
    """

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    version = serializers.IntegerField(required=False, min_value=1)


class OrderFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)


class OrderSerializer(serializers.ModelSerializer):
    """Order as shown to its parties."""

    client = UserSummarySerializer(read_only=True)
    freelancer = UserSummarySerializer(read_only=True)
    service_title = serializers.CharField(source="service.title", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "service",
            "service_title",
            "client",
            "freelancer",
            "status",
            "payment_status",
            "requirements",
            "price",
            "start_date",
            "completion_date",
            "is_reviewable",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderMessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=5000)


class OrderMessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = OrderMessage
        fields = ["id", "order", "sender", "content", "sequence", "created_at"]
        read_only_fields = fields
