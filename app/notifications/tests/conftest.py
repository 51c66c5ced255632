"""
Test configuration and fixtures for notification tests.

The autouse ``realtime_publisher`` fixture in app/conftest.py already
installs a RecordingPublisher; fixtures here cover socket-level tests.
"""

import pytest
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import ClientUserFactory
from notifications.publishers import set_realtime_publisher
from notifications.tests.fakes import FailingPublisher
from orders.tests.factories import OrderFactory


@pytest.fixture
def failing_publisher():
    """Install a publisher that raises on every call."""
    publisher = FailingPublisher()
    set_realtime_publisher(publisher)
    yield publisher
    set_realtime_publisher(None)


@pytest.fixture
def access_token_for():
    """Build a JWT access token string for a user."""

    def _make(user):
        return str(AccessToken.for_user(user))

    return _make


@pytest.fixture
def pending_order(db):
    return OrderFactory()


@pytest.fixture
def outsider(db):
    """A client with no part in pending_order."""
    return ClientUserFactory()
