"""
Auto-release scheduler worker.

Completing an order writes a ScheduledRelease row. This worker turns due
rows into releases:

- process_due_releases: periodic scan (celery-beat) that queues one task
  per due row
- execute_scheduled_release: fires a single row through
  ReleaseService.release_payment, the same path an admin release takes

Eligibility is evaluated when the row fires: an order whose payment was
already released by an admin, or never captured, is skipped. Each row fires
once; a failed release leaves the payout pending for a manual release.

Usage:
    from payments.workers import process_due_releases

    process_due_releases.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.exceptions import LockAcquisitionError
from payments.locks import DistributedLock
from payments.models import Payment, ScheduledRelease
from payments.services import ReleaseService
from payments.state_machines import (
    PaymentStatus,
    PayoutStatus,
    ScheduledReleaseOutcome,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Maximum rows queued per sweep
BATCH_SIZE = 100

SCHEDULED_RELEASE_LOCK_TTL = 120


# =============================================================================
# Periodic Task: Scan for Due Releases
# =============================================================================


@shared_task(bind=True)
def process_due_releases(self) -> dict:
    """
    Queue execute_scheduled_release for every due, unprocessed row.

    Idempotent: a row queued twice is fired once, because the per-row task
    takes a lock and re-checks processed_at.

    Returns:
        Dict with queued_count
    """
    due_releases = ScheduledRelease.objects.due()[:BATCH_SIZE]

    queued_count = 0
    for scheduled in due_releases:
        execute_scheduled_release.delay(scheduled.pk)
        queued_count += 1
        logger.info(
            "Queued scheduled release",
            extra={
                "scheduled_release_id": scheduled.pk,
                "order_id": str(scheduled.order_id),
                "due_at": scheduled.due_at.isoformat(),
            },
        )

    if queued_count:
        logger.info(
            f"Release sweep complete: queued {queued_count} releases",
            extra={"queued_count": queued_count},
        )
    return {"queued_count": queued_count}


# =============================================================================
# Individual Release Task
# =============================================================================


@shared_task(bind=True, acks_late=True)
def execute_scheduled_release(self, scheduled_release_id: int) -> dict:
    """
    Fire one scheduled release.

    Never raises: every failure is recorded on the row.

    Returns:
        Dict with status: "released", "skipped", "failed",
        "already_processed", "not_found" or "locked"
    """
    log_context = {"scheduled_release_id": scheduled_release_id}

    lock = DistributedLock(
        f"scheduled_release:{scheduled_release_id}",
        ttl=SCHEDULED_RELEASE_LOCK_TTL,
        blocking=False,
    )
    try:
        lock.acquire()
    except LockAcquisitionError:
        logger.info("Scheduled release already being fired", extra=log_context)
        return {"status": "locked", **log_context}

    try:
        return _fire(scheduled_release_id, log_context)
    finally:
        lock.release()


def _fire(scheduled_release_id: int, log_context: dict) -> dict:
    scheduled = ScheduledRelease.objects.filter(pk=scheduled_release_id).first()
    if scheduled is None:
        logger.warning("ScheduledRelease not found", extra=log_context)
        return {"status": "not_found", **log_context}

    if scheduled.is_processed:
        return {"status": "already_processed", **log_context}

    log_context["order_id"] = str(scheduled.order_id)

    payment = (
        Payment.objects.filter(
            order_id=scheduled.order_id,
            status=PaymentStatus.SUCCEEDED,
            payout_status=PayoutStatus.PENDING,
        )
        .order_by("-created_at")
        .first()
    )
    if payment is None:
        scheduled.mark_processed(ScheduledReleaseOutcome.SKIPPED)
        scheduled.save(update_fields=["processed_at", "outcome", "last_error", "updated_at"])
        logger.info("No releasable payment, scheduled release skipped", extra=log_context)
        return {"status": "skipped", **log_context}

    log_context["payment_id"] = str(payment.id)
    scheduled.attempts += 1

    try:
        ReleaseService.release_payment(payment.id, triggered_by="auto_release")
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        scheduled.mark_processed(ScheduledReleaseOutcome.FAILED, error=error)
        scheduled.save()
        logger.error(
            "Scheduled release failed, payout left pending for manual release",
            extra={**log_context, "error": error},
            exc_info=True,
        )
        return {"status": "failed", "error": error, **log_context}

    scheduled.mark_processed(ScheduledReleaseOutcome.RELEASED)
    scheduled.save()
    logger.info("Scheduled release completed", extra=log_context)
    return {"status": "released", **log_context}
