"""
Concurrency control utilities for orders and payments.

Two complementary mechanisms:

1. **Distributed Locks** (DistributedLock, release_lock)
   - Redis-based mutual exclusion across web and worker processes
   - TTL prevents deadlocks from crashed processes
   - Use for: sections that include a Stripe call, where a database row
     lock cannot be held (release executor)

2. **Optimistic Locking** (check_version)
   - Version-based conflict detection on a single row
   - Use for: updates where the client states the version it last saw

Usage:

    from payments.locks import release_lock

    with release_lock(payment.id):
        # Only one process releases this payment at a time
        ...

    from payments.locks import check_version

    with transaction.atomic():
        order = check_version(Order, order_id, expected_version=3)
        order.start()
        order.save()  # version -> 4
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING, TypeVar

from django.conf import settings
from django.db import models, transaction

from django_redis import get_redis_connection

from core.exceptions import NotFoundError
from payments.exceptions import LockAcquisitionError, StaleRecordError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

T = TypeVar("T", bound=models.Model)


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Ownership is tracked with a random token so a process whose lock has
    expired cannot delete a lock another process has since acquired.

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Seconds until Redis drops the lock on its own
        blocking: If True, acquire() polls until the lock is free
        timeout: Maximum wait in seconds (blocking mode only)

    Raises:
        LockAcquisitionError: On acquire(), when the lock stays held
    """

    # Atomic check-and-delete
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock or raise.

        Returns:
            True once the lock is held

        Raises:
            LockAcquisitionError: Lock still held after timeout (blocking)
                or held right now (non-blocking)
        """
        self._token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            end_time = time.monotonic() + self.timeout
            while time.monotonic() < end_time:
                if self._try_acquire(redis):
                    return True
                time.sleep(self.POLL_INTERVAL)

            self._token = None
            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis):
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        return True

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """
        Release the lock if we hold it. Safe to call more than once.

        Returns:
            True if the lock was deleted, False if we no longer owned it
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


def release_lock(payment_id: Any) -> DistributedLock:
    """
    Lock serialising every release attempt of one payment.

    Admin releases and the auto-release worker share this key, so only
    one of them can reach the transfer call at a time.
    """
    return DistributedLock(
        f"payment:release:{payment_id}",
        ttl=settings.RELEASE_LOCK_TTL_SECONDS,
        blocking=True,
        timeout=settings.RELEASE_LOCK_TIMEOUT_SECONDS,
    )


# =============================================================================
# Optimistic Locking
# =============================================================================


def check_version(
    model_class: type[T],
    pk: Any,
    expected_version: int,
) -> T:
    """
    Lock a row for update, but only if it is still at the expected version.

    Args:
        model_class: Model with a 'version' field (see VersionedMixin)
        pk: Primary key of the record
        expected_version: Version the caller last read

    Returns:
        The locked instance. The row lock lasts until the caller's
        transaction ends, so call this inside transaction.atomic().

    Raises:
        NotFoundError: No such record
        StaleRecordError: The record has moved past expected_version
    """
    with transaction.atomic():
        instance = (
            model_class.objects.select_for_update()
            .filter(pk=pk, version=expected_version)
            .first()
        )
        if instance is not None:
            return instance

        model_name = model_class.__name__
        current = model_class.objects.filter(pk=pk).values_list("version", flat=True).first()
        if current is None:
            raise NotFoundError(
                f"{model_name} not found",
                error_code=f"{model_name.upper()}_NOT_FOUND",
                details={"pk": str(pk)},
            )

        raise StaleRecordError(
            f"{model_name} has been modified "
            f"(expected version {expected_version}, current {current})",
            details={
                "pk": str(pk),
                "expected_version": expected_version,
                "current_version": current,
            },
        )


__all__ = [
    "DistributedLock",
    "check_version",
    "release_lock",
]
