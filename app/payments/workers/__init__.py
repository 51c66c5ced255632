"""
Workers for async payment processing.

- release_scheduler: sweeps due ScheduledRelease rows and fires them

Usage:
    from payments.workers import process_due_releases, execute_scheduled_release

    process_due_releases.delay()
    execute_scheduled_release.delay(scheduled_release.pk)
"""

from payments.workers.release_scheduler import (
    execute_scheduled_release,
    process_due_releases,
)

__all__ = [
    "execute_scheduled_release",
    "process_due_releases",
]
