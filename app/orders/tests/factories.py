"""
Factory Boy factories for order models.

Usage:
    from orders.tests.factories import OrderFactory, ServiceFactory

    order = OrderFactory()                     # pending, unpaid
    order = OrderFactory(status="in_progress")  # written straight to the row
"""

from decimal import Decimal

import factory

from authentication.tests.factories import ClientUserFactory, FreelancerFactory
from orders.models import Order, OrderMessage, OrderStatus, Service


class ServiceFactory(factory.django.DjangoModelFactory):
    """A freelancer's active service priced at 100.00."""

    class Meta:
        model = Service

    freelancer = factory.SubFactory(FreelancerFactory)
    title = factory.Sequence(lambda n: f"Service {n}")
    description = "Logo design in three rounds"
    price = Decimal("100.00")
    is_active = True


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Order for a service, with the price snapshot taken from it.

    status is protected on the model, so non-default statuses are written
    with a queryset update after creation.
    """

    class Meta:
        model = Order
        skip_postgeneration_save = True

    service = factory.SubFactory(ServiceFactory)
    client = factory.SubFactory(ClientUserFactory)
    freelancer = factory.LazyAttribute(lambda o: o.service.freelancer)
    requirements = "Please deliver a vector logo"
    price = factory.LazyAttribute(lambda o: o.service.price)

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        status = kwargs.pop("status", OrderStatus.PENDING)
        order = super()._create(model_class, *args, **kwargs)
        if status != OrderStatus.PENDING:
            Order.objects.filter(pk=order.pk).update(status=status)
            order = model_class.objects.get(pk=order.pk)
        return order


class OrderMessageFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderMessage

    order = factory.SubFactory(OrderFactory)
    sender = factory.LazyAttribute(lambda o: o.order.client)
    content = factory.Faker("sentence")
    sequence = factory.Sequence(lambda n: n + 1)
