"""
DRF views for orders app.

URL Structure:
    /api/v1/orders/                    GET (list), POST (create, client)
    /api/v1/orders/{id}/               GET
    /api/v1/orders/{id}/status/        PUT
    /api/v1/orders/{id}/messages/      GET, POST

All business rules are enforced in orders.services; views translate
between HTTP and service calls.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsClient
from orders.pagination import OrderMessageCursorPagination
from orders.serializers import (
    OrderCreateSerializer,
    OrderFilterSerializer,
    OrderMessageCreateSerializer,
    OrderMessageSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
)
from orders.services import OrderMessageService, OrderService


class OrderListCreateView(generics.GenericAPIView):
    """
    Orders of the current user, and order placement.

    GET lists orders where the user is client or freelancer (newest first,
    optional ?status=). POST places an order (clients only).
    """

    serializer_class = OrderSerializer

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAuthenticated(), IsClient()]
        return [IsAuthenticated()]

    @extend_schema(
        parameters=[
            OpenApiParameter("status", str, description="Filter by order status"),
        ],
        responses={200: OrderSerializer(many=True)},
        tags=["Orders"],
    )
    def get(self, request):
        filters = OrderFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        queryset = OrderService.list_orders(
            request.user, status=filters.validated_data.get("status")
        )
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(OrderSerializer(page, many=True).data)
        return Response(OrderSerializer(queryset, many=True).data)

    @extend_schema(
        request=OrderCreateSerializer,
        responses={
            201: OrderSerializer,
            400: OpenApiResponse(description="Invalid input or own service"),
            403: OpenApiResponse(description="Only clients can place orders"),
            404: OpenApiResponse(description="Service not found"),
        },
        tags=["Orders"],
    )
    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.create_order(
            request.user,
            serializer.validated_data["service_id"],
            serializer.validated_data["requirements"],
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """GET /api/v1/orders/{id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        responses={
            200: OrderSerializer,
            403: OpenApiResponse(description="Not a party to this order"),
            404: OpenApiResponse(description="Order not found"),
        },
        tags=["Orders"],
    )
    def get(self, request, order_id):
        order = OrderService.get_order(request.user, order_id)
        return Response(OrderSerializer(order).data)


class OrderStatusView(APIView):
    """
    Move an order through its lifecycle.

    PUT /api/v1/orders/{id}/status/

    Request body:
        {"status": "accepted", "version": 3}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=OrderStatusUpdateSerializer,
        responses={
            200: OrderSerializer,
            400: OpenApiResponse(description="Unknown status"),
            403: OpenApiResponse(description="Not allowed to make this change"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(
                description="Transition not allowed, or order modified concurrently"
            ),
        },
        tags=["Orders"],
    )
    def put(self, request, order_id):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.update_status(
            request.user,
            order_id,
            serializer.validated_data["status"],
            expected_version=serializer.validated_data.get("version"),
        )
        order = OrderService.get_order(request.user, order.id)
        return Response(OrderSerializer(order).data)


class OrderMessageListCreateView(generics.GenericAPIView):
    """
    Message thread of an order.

    GET returns messages oldest first (cursor paginated);
    POST appends a message and notifies the other party.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderMessageSerializer
    pagination_class = OrderMessageCursorPagination

    @extend_schema(responses={200: OrderMessageSerializer(many=True)}, tags=["Orders"])
    def get(self, request, order_id):
        queryset = OrderMessageService.list_messages(request.user, order_id)
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(
                OrderMessageSerializer(page, many=True).data
            )
        return Response(OrderMessageSerializer(queryset, many=True).data)

    @extend_schema(
        request=OrderMessageCreateSerializer,
        responses={
            201: OrderMessageSerializer,
            400: OpenApiResponse(description="Empty message"),
            403: OpenApiResponse(description="Not a party to this order"),
            404: OpenApiResponse(description="Order not found"),
        },
        tags=["Orders"],
    )
    def post(self, request, order_id):
        serializer = OrderMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = OrderMessageService.add_message(
            request.user, order_id, serializer.validated_data["content"]
        )
        return Response(
            OrderMessageSerializer(message).data, status=status.HTTP_201_CREATED
        )
