"""
Tests for NotificationService.

Verifies:
- Events reach the installed publisher with user and order ids
- on_commit variants publish only after the transaction commits
- Publisher failures are logged and swallowed
"""

from uuid import uuid4

import pytest
from django.db import transaction

from notifications import events
from notifications.services import NotificationService


class TestNotifyUser:
    def test_publishes_to_user(self, realtime_publisher):
        user_id = uuid4()

        assert NotificationService.notify_user(
            user_id, events.NEW_ORDER, {"order_id": "o1"}
        ) is True

        assert realtime_publisher.user_events == [
            (str(user_id), events.NEW_ORDER, {"order_id": "o1"})
        ]

    def test_failure_is_swallowed(self, failing_publisher, caplog):
        result = NotificationService.notify_user(uuid4(), events.NEW_ORDER, {})

        assert result is False
        assert "Failed to publish user notification" in caplog.text


class TestBroadcastToOrder:
    def test_publishes_to_order_room(self, realtime_publisher):
        order_id = uuid4()

        NotificationService.broadcast_to_order(
            order_id, events.NEW_MESSAGE, {"content": "hi"}
        )

        assert realtime_publisher.order_events == [
            (str(order_id), events.NEW_MESSAGE, {"content": "hi"})
        ]
        assert realtime_publisher.user_events == []

    def test_failure_is_swallowed(self, failing_publisher):
        assert NotificationService.broadcast_to_order(uuid4(), events.NEW_MESSAGE, {}) is False


@pytest.mark.django_db
class TestOnCommit:
    def test_nothing_published_before_commit(
        self, realtime_publisher, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks() as callbacks:
            NotificationService.notify_user_on_commit(uuid4(), events.PAYMENT_RECEIVED, {})
            NotificationService.broadcast_to_order_on_commit(uuid4(), events.NEW_MESSAGE, {})

            assert realtime_publisher.user_events == []
            assert realtime_publisher.order_events == []

        assert len(callbacks) == 2

    def test_published_after_commit(
        self, realtime_publisher, django_capture_on_commit_callbacks
    ):
        user_id = uuid4()

        with django_capture_on_commit_callbacks(execute=True):
            NotificationService.notify_user_on_commit(
                user_id, events.PAYMENT_RELEASED, {"amount_cents": 9000}
            )

        assert realtime_publisher.events_for_user(user_id) == [events.PAYMENT_RELEASED]

    def test_dropped_on_rollback(self, realtime_publisher, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    NotificationService.notify_user_on_commit(
                        uuid4(), events.ORDER_STATUS_UPDATED, {}
                    )
                    raise RuntimeError("rolled back")

        assert callbacks == []
        assert realtime_publisher.user_events == []

    def test_failing_publisher_does_not_break_commit(
        self, failing_publisher, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            NotificationService.notify_user_on_commit(uuid4(), events.ACCOUNT_READY, {})

        assert len(callbacks) == 1
