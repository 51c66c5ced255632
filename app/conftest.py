"""
Project-wide pytest configuration.

- Speeds up password hashing and disables throttling
- Installs in-memory stand-ins for the realtime publisher and Redis locks
  in every test
- Auto-marks tests as unit / integration / e2e by filename
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import (
    AdminUserFactory,
    ClientUserFactory,
    FreelancerFactory,
)
from notifications.publishers import set_realtime_publisher
from notifications.tests.fakes import RecordingPublisher
from payments.tests.fakes import FakeRedis


def pytest_configure():
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full order-to-payout journeys)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_stripe_adapter.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_release_service.py",
        "test_payment_service.py",
        "test_connect_service.py",
        "test_release_scheduler.py",
        "test_consumers.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_managers.py",
        "test_stripe_adapter.py",
        "test_locks.py",
        "test_publishers.py",
        "test_middleware.py",
        "test_exception_handler.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def realtime_publisher():
    """Record notifications instead of sending them through Channels."""
    publisher = RecordingPublisher()
    set_realtime_publisher(publisher)
    yield publisher
    set_realtime_publisher(None)


@pytest.fixture(autouse=True)
def fake_redis(mocker):
    """Back payments.locks with an in-memory Redis."""
    redis = FakeRedis()
    mocker.patch("payments.locks.get_redis_connection", return_value=redis)
    return redis


# =============================================================================
# Users and API client
# =============================================================================


@pytest.fixture
def client_user(db):
    """Create a client."""
    return ClientUserFactory()


@pytest.fixture
def freelancer(db):
    """Create a freelancer with no connected account."""
    return FreelancerFactory()


@pytest.fixture
def payout_freelancer(db):
    """Create a freelancer whose connected account can receive transfers."""
    return FreelancerFactory(with_payouts=True)


@pytest.fixture
def admin_user(db):
    """Create a platform admin."""
    return AdminUserFactory()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client():
    """Return a factory for API clients authenticated as a given user."""

    def _make(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _make


def _patch_postgresql_flush_for_cascade():
    """
    Patch PostgreSQL flush to always use CASCADE.

    Django's TransactionTestCase uses TRUNCATE to reset the database, which
    fails on tables with foreign key constraints unless CASCADE is used.
    """
    from django.db.backends.postgresql import operations

    original_sql_flush = operations.DatabaseOperations.sql_flush

    def sql_flush_with_cascade(
        self, style, tables, *, reset_sequences=False, allow_cascade=False
    ):
        return original_sql_flush(
            self, style, tables, reset_sequences=reset_sequences, allow_cascade=True
        )

    operations.DatabaseOperations.sql_flush = sql_flush_with_cascade


_patch_postgresql_flush_for_cascade()
