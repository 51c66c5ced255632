"""
Pytest fixtures for order tests.

User fixtures (client_user, freelancer, admin_user) and API client fixtures
come from app/conftest.py.
"""

import pytest

from authentication.tests.factories import ClientUserFactory
from orders.models import OrderStatus
from orders.tests.factories import OrderFactory, ServiceFactory


@pytest.fixture
def service(db, freelancer):
    """An active 100.00 service offered by the freelancer fixture."""
    return ServiceFactory(freelancer=freelancer)


@pytest.fixture
def pending_order(db, service, client_user):
    return OrderFactory(service=service, client=client_user)


@pytest.fixture
def accepted_order(db, service, client_user):
    return OrderFactory(service=service, client=client_user, status=OrderStatus.ACCEPTED)


@pytest.fixture
def in_progress_order(db, service, client_user):
    return OrderFactory(
        service=service, client=client_user, status=OrderStatus.IN_PROGRESS
    )


@pytest.fixture
def outsider(db):
    """A client who is not a party to any fixture order."""
    return ClientUserFactory()
