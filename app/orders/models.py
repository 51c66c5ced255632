"""
Order models for the marketplace.

Service is the catalogue entry a client orders; it only exists here as the
source of the price snapshot. Order carries the lifecycle a freelancer drives
through django-fsm transitions, and OrderMessage is the append-only message
thread between the two parties.

State Flow:
    pending → accepted → in_progress → completed
    pending/accepted → cancelled

Payment status is an independent axis (unpaid → paid) owned by the payments
app's webhook handlers.

Usage:
    from orders.models import Order, OrderStatus

    order = Order.objects.select_for_update().get(pk=order_id)
    order.accept()  # pending -> accepted, sets start_date
    order.save()
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel


class OrderStatus(models.TextChoices):
    """
    Lifecycle states of an Order.

    Terminal states: COMPLETED, CANCELLED
    """

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class OrderPaymentStatus(models.TextChoices):
    """Payment axis of an Order, independent of its lifecycle status."""

    UNPAID = "unpaid", "Unpaid"
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"


class Service(UUIDPrimaryKeyMixin, BaseModel):
    """
    A service offered by a freelancer.

    Only the fields an order needs are modelled; catalogue management
    happens elsewhere.
    """

    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="services",
        help_text="Freelancer offering this service",
    )
    title = models.CharField(
        max_length=200,
        help_text="Short service title",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="What the freelancer delivers",
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Current price in major currency units",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive services cannot be ordered",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="service_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.title


class Order(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    An order placed by a client for a freelancer's service.

    Fields:
        service/client/freelancer: Parties, never deleted while an order exists
        status: Lifecycle state (managed by FSM, protected)
        payment_status: Payment axis (unpaid until the capture webhook)
        requirements: Client's brief, immutable after creation
        price: Snapshot of Service.price at creation
        start_date: Set when the freelancer accepts
        completion_date: Set when the freelancer completes
        is_reviewable: Opened on completion
        version: Optimistic locking version

    Note:
        status cannot be assigned directly. Use the transition methods and
        save() in the same transaction that locked the row.
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Service that was ordered",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="client_orders",
        help_text="Client who placed the order",
    )
    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="freelancer_orders",
        help_text="Freelancer delivering the order",
    )

    # ==========================================================================
    # Status
    # ==========================================================================

    status = FSMField(
        default=OrderStatus.PENDING,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
        help_text="Lifecycle status (managed by FSM)",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=OrderPaymentStatus.choices,
        default=OrderPaymentStatus.UNPAID,
        db_index=True,
        help_text="Payment status, set by payment webhooks",
    )

    # ==========================================================================
    # Terms
    # ==========================================================================

    requirements = models.TextField(
        help_text="Client's requirements for the work",
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Price snapshot taken from the service at creation",
    )

    # ==========================================================================
    # Timeline
    # ==========================================================================

    start_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the freelancer accepted the order",
    )
    completion_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the freelancer completed the order",
    )
    is_reviewable = models.BooleanField(
        default=False,
        help_text="Whether the client may leave a review",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["client", "status"],
                name="order_client_status_idx",
            ),
            models.Index(
                fields=["freelancer", "status"],
                name="order_freelancer_status_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="order_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}, {self.price})"

    def is_party(self, user) -> bool:
        """Whether the user is this order's client or freelancer."""
        return user.pk in (self.client_id, self.freelancer_id)

    def other_party_id(self, user):
        """Id of the party that is not ``user``."""
        return self.freelancer_id if user.pk == self.client_id else self.client_id

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.ACCEPTED,
    )
    def accept(self):
        """Freelancer accepts the order. Transition: PENDING -> ACCEPTED"""
        if self.start_date is None:
            self.start_date = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.ACCEPTED,
        target=OrderStatus.IN_PROGRESS,
    )
    def start(self):
        """Transition: ACCEPTED -> IN_PROGRESS"""
        pass

    @transition(
        field=status,
        source=OrderStatus.IN_PROGRESS,
        target=OrderStatus.COMPLETED,
    )
    def complete(self):
        """
        Freelancer delivers the work.

        Transition: IN_PROGRESS -> COMPLETED

        Opens the order for review. The caller schedules the automatic
        payment release in the same transaction.
        """
        if self.completion_date is None:
            self.completion_date = timezone.now()
        self.is_reviewable = True

    @transition(
        field=status,
        source=[OrderStatus.PENDING, OrderStatus.ACCEPTED],
        target=OrderStatus.CANCELLED,
    )
    def cancel(self):
        """Either party cancels before work starts. PENDING/ACCEPTED -> CANCELLED"""
        pass


class OrderMessage(BaseModel):
    """
    A message in an order's thread.

    Messages are append-only. sequence is assigned under the order's row
    lock, so it orders messages even when created_at ties.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Order this message belongs to",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="order_messages",
        help_text="Party who sent the message",
    )
    content = models.TextField(
        help_text="Message body",
    )
    sequence = models.PositiveIntegerField(
        help_text="Position of the message in the order's thread (1-based)",
    )

    class Meta:
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"],
                name="order_message_unique_sequence",
            ),
        ]

    def __str__(self) -> str:
        return f"OrderMessage({self.order_id}#{self.sequence})"
