"""Removal of an enrollment and everything that hangs off it.

Order matters and is fixed:

  1. progress rows
  2. submissions
  3. activity log rows   (best effort)
  4. the enrollment itself
  5. its group, if no enrollment points at it any more   (best effort)

Steps 1, 2 and 4 propagate failures, which rolls back the surrounding
transaction.  Steps 3 and 5 run in a savepoint; a failure is logged,
counted, and the purge carries on.  Each step is a plain "delete where",
so re-running a purge that was interrupted is harmless.
"""

from __future__ import annotations

import logging
from uuid import UUID

from learnhub.core.errors import AccessDeniedError, NotFoundError
from learnhub.core.metrics import BEST_EFFORT_FAILURES, ENROLLMENTS_PURGED
from learnhub.models.enrollment import Enrollment
from learnhub.repos.bundle import Repos

logger = logging.getLogger(__name__)


async def delete_enrollment(
    repos: Repos, enrollment_id: UUID, requesting_user_id: UUID
) -> None:
    """Leave a project: the owner removes one of their enrollments."""
    enrollment = await repos.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    if enrollment.user_id != requesting_user_id:
        logger.warning(
            "Access denied: user=%s tried to delete enrollment=%s",
            requesting_user_id,
            enrollment_id,
        )
        raise AccessDeniedError("Access denied")

    await purge_enrollment(repos, enrollment, reason="unassign")


async def purge_enrollment(
    repos: Repos, enrollment: Enrollment, *, reason: str
) -> None:
    """Run the cascade without an ownership check.

    Callers are either delete_enrollment (after its check) or
    system-initiated cleanup such as duplicate reconciliation.
    """
    eid = enrollment.id

    progress_deleted = await repos.progress.delete_for_enrollment(eid)
    submissions_deleted = await repos.submissions.delete_for_enrollment(eid)

    activities_deleted = 0
    try:
        async with repos.savepoint():
            activities_deleted = await repos.activities.delete_for_enrollment(eid)
    except Exception:
        BEST_EFFORT_FAILURES.labels(operation="delete_activities").inc()
        logger.warning(
            "Could not delete activities for enrollment=%s, continuing",
            eid,
            exc_info=True,
            extra={"enrollment_id": str(eid)},
        )

    await repos.enrollments.delete(eid)

    if enrollment.group_id is not None:
        await _delete_group_if_orphaned(repos, enrollment.group_id)

    ENROLLMENTS_PURGED.labels(reason=reason).inc()
    logger.info(
        "Enrollment purged  enrollment=%s reason=%s progress=%d submissions=%d activities=%d",
        eid,
        reason,
        progress_deleted,
        submissions_deleted,
        activities_deleted,
        extra={"enrollment_id": str(eid)},
    )


async def _delete_group_if_orphaned(repos: Repos, group_id: UUID) -> None:
    try:
        async with repos.savepoint():
            remaining = await repos.enrollments.count_by_group(group_id)
            if remaining == 0 and await repos.groups.delete(group_id):
                logger.info("Deleted orphaned group=%s", group_id)
    except Exception:
        BEST_EFFORT_FAILURES.labels(operation="delete_group").inc()
        logger.warning(
            "Could not delete orphaned group=%s, continuing", group_id, exc_info=True
        )
