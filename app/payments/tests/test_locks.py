"""
Tests for payments.locks.

- DistributedLock against a MagicMock connection (exact Redis calls)
- DistributedLock against FakeRedis (mutual exclusion, ownership)
- release_lock key and settings
- check_version optimistic locking
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from core.exceptions import NotFoundError
from orders.models import Order
from orders.tests.factories import OrderFactory
from payments.exceptions import LockAcquisitionError, StaleRecordError
from payments.locks import DistributedLock, check_version, release_lock


@pytest.fixture
def mock_redis(mocker):
    """MagicMock connection, for asserting on the exact calls made."""
    redis_instance = MagicMock()
    mocker.patch("payments.locks.get_redis_connection", return_value=redis_instance)
    return redis_instance


class TestDistributedLockCalls:
    def test_acquire_uses_set_nx_with_ttl(self, mock_redis):
        mock_redis.set.return_value = True

        lock = DistributedLock("payment:release:abc", ttl=30, blocking=False)

        assert lock.acquire() is True
        args, kwargs = mock_redis.set.call_args
        assert args[0] == "lock:payment:release:abc"
        assert kwargs == {"nx": True, "ex": 30}

    def test_each_acquisition_gets_its_own_token(self, mock_redis):
        mock_redis.set.return_value = True

        first = DistributedLock("a", blocking=False)
        second = DistributedLock("b", blocking=False)
        first.acquire()
        second.acquire()

        assert first._token and second._token
        assert first._token != second._token

    def test_non_blocking_raises_when_held(self, mock_redis):
        mock_redis.set.return_value = False

        lock = DistributedLock("busy", blocking=False)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert "already held" in str(exc_info.value)
        assert exc_info.value.details == {"key": "lock:busy"}
        assert lock.is_held is False

    def test_blocking_polls_until_free(self, mock_redis, mocker):
        mocker.patch("payments.locks.time.sleep")
        mock_redis.set.side_effect = [False, False, True]

        lock = DistributedLock("contended", blocking=True, timeout=5.0)

        assert lock.acquire() is True
        assert mock_redis.set.call_count == 3

    def test_blocking_timeout(self, mock_redis):
        mock_redis.set.return_value = False

        lock = DistributedLock("contended", blocking=True, timeout=0.1)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert exc_info.value.details["timeout"] == 0.1
        assert exc_info.value.error_code == "LOCK_ACQUISITION_FAILED"

    def test_release_without_acquire_is_noop(self, mock_redis):
        assert DistributedLock("idle").release() is False
        mock_redis.eval.assert_not_called()


class TestDistributedLockBehaviour:
    """Uses the autouse fake_redis fixture from app/conftest.py."""

    def test_same_key_is_mutually_exclusive(self, fake_redis):
        holder = DistributedLock("order:1", blocking=False)
        contender = DistributedLock("order:1", blocking=False)

        holder.acquire()
        with pytest.raises(LockAcquisitionError):
            contender.acquire()

        holder.release()
        assert contender.acquire() is True

    def test_different_keys_do_not_block(self, fake_redis):
        first = DistributedLock("order:1", blocking=False)
        second = DistributedLock("order:2", blocking=False)

        first.acquire()
        second.acquire()

        assert first.is_held and second.is_held

    def test_expired_holder_cannot_delete_new_owner(self, fake_redis):
        """A process whose lock expired must not release the next owner's lock."""
        stale = DistributedLock("order:1", blocking=False)
        stale.acquire()

        # TTL runs out and another process takes the key
        del fake_redis.store["lock:order:1"]
        fresh = DistributedLock("order:1", blocking=False)
        fresh.acquire()

        assert stale.release() is False
        assert fake_redis.get("lock:order:1") == fresh._token

    def test_context_manager_releases_on_error(self, fake_redis):
        with pytest.raises(ValueError):
            with DistributedLock("order:1", blocking=False):
                raise ValueError("boom")

        assert "lock:order:1" not in fake_redis.store

    def test_release_lock_key_and_settings(self, fake_redis, settings):
        settings.RELEASE_LOCK_TTL_SECONDS = 45
        settings.RELEASE_LOCK_TIMEOUT_SECONDS = 3
        payment_id = uuid4()

        lock = release_lock(payment_id)

        assert lock.key == f"lock:payment:release:{payment_id}"
        assert lock.ttl == 45
        assert lock.timeout == 3
        assert lock.blocking is True


class TestCheckVersion:
    def test_returns_row_at_expected_version(self, db):
        order = OrderFactory()

        locked = check_version(Order, order.pk, expected_version=1)

        assert locked.pk == order.pk

    def test_stale_version_raises_with_details(self, db):
        order = OrderFactory()
        order.accept()
        order.save()  # version 2

        with pytest.raises(StaleRecordError) as exc_info:
            check_version(Order, order.pk, expected_version=1)

        assert exc_info.value.details["expected_version"] == 1
        assert exc_info.value.details["current_version"] == 2
        assert exc_info.value.http_status == 409

    def test_missing_row_raises_not_found(self, db):
        with pytest.raises(NotFoundError) as exc_info:
            check_version(Order, uuid4(), expected_version=1)

        assert exc_info.value.error_code == "ORDER_NOT_FOUND"
