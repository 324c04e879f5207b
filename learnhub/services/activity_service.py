"""Activity log and time-spent bookkeeping.

``log_activity`` is the strict primitive: it raises on a missing
enrollment or an unknown type.  Request handlers use ``record_activity``
instead, which wraps it in a savepoint and never raises, because a lost
log line must not undo the learner's actual work.

Time spent is derived from SESSION_START / SESSION_END pairs:

    START 10:00  END 10:30  START 10:40  END 10:50   -> 40 minutes
    START 10:00  START 10:05  END 10:30              -> 30 minutes
    START 10:00  (no END yet)                        ->  0 minutes

A START while a session is open is ignored, an END with no open session
is ignored, and a trailing open session contributes nothing.
"""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from learnhub.core.errors import InvalidInputError, NotFoundError
from learnhub.core.metrics import BEST_EFFORT_FAILURES
from learnhub.models.activity import ACTIVITY_TYPES, UserActivity
from learnhub.models.enrollment import Enrollment
from learnhub.repos.activity_repo import ActivityFilter
from learnhub.repos.bundle import Repos
from learnhub.services import message_service
from learnhub.services.progress_service import round_half_up

logger = logging.getLogger(__name__)

COMPLETION_TITLE = "Congratulations on Completing Your Project!"


@dataclass(frozen=True, slots=True)
class ActivitySummary:
    activity_counts: dict[str, int]
    total_activities: int
    time_spent_minutes: int
    first_activity: datetime.datetime | None
    last_activity: datetime.datetime | None


async def log_activity(
    repos: Repos,
    enrollment_id: UUID,
    activity_type: str,
    metadata: dict[str, Any] | None = None,
    *,
    at: datetime.datetime | None = None,
) -> UserActivity:
    if activity_type not in ACTIVITY_TYPES:
        raise InvalidInputError(f"Unknown activity type {activity_type!r}")
    if await repos.enrollments.get(enrollment_id) is None:
        raise NotFoundError("Enrollment not found")

    activity = UserActivity.new(
        enrollment_id=enrollment_id,
        activity_type=activity_type,
        metadata_json=json.dumps(metadata, default=str) if metadata is not None else None,
        created_at=at,
    )
    await repos.activities.add(activity)
    await repos.enrollments.touch(enrollment_id, datetime.datetime.now(datetime.UTC))
    return activity


async def record_activity(
    repos: Repos,
    enrollment_id: UUID,
    activity_type: str,
    metadata: dict[str, Any] | None = None,
) -> UserActivity | None:
    """Best-effort log_activity. Returns None when logging failed."""
    try:
        async with repos.savepoint():
            return await log_activity(repos, enrollment_id, activity_type, metadata)
    except Exception:
        BEST_EFFORT_FAILURES.labels(operation="log_activity").inc()
        logger.warning(
            "Failed to log activity",
            exc_info=True,
            extra={"enrollment_id": str(enrollment_id), "activity_type": activity_type},
        )
        return None


def session_minutes(activities: list[UserActivity]) -> float:
    """Sum of closed session lengths, in minutes. Expects ascending order."""
    total = 0.0
    opened: datetime.datetime | None = None
    for a in activities:
        if a.activity_type == "SESSION_START":
            if opened is None:
                opened = a.created_at
        elif a.activity_type == "SESSION_END" and opened is not None:
            total += (a.created_at - opened).total_seconds() / 60
            opened = None
    return total


async def compute_session_minutes(repos: Repos, enrollment_id: UUID) -> int:
    """Recompute and store time spent; returns the rounded minutes.

    A zero result is returned but not written, so an earlier positive
    value is never overwritten with 0.
    """
    if await repos.enrollments.get(enrollment_id) is None:
        raise NotFoundError("Enrollment not found")

    activities = await repos.activities.list_for_enrollment(enrollment_id)
    minutes = round_half_up(session_minutes(activities))
    if minutes > 0:
        await repos.enrollments.set_time_spent(enrollment_id, minutes)
    return minutes


async def activity_summary(repos: Repos, enrollment_id: UUID) -> ActivitySummary:
    counts = await repos.activities.count_by_type(enrollment_id)
    minutes = await compute_session_minutes(repos, enrollment_id)
    activities = await repos.activities.list_for_enrollment(enrollment_id)
    return ActivitySummary(
        activity_counts=counts,
        total_activities=sum(counts.values()),
        time_spent_minutes=minutes,
        first_activity=activities[0].created_at if activities else None,
        last_activity=activities[-1].created_at if activities else None,
    )


async def list_activities(
    repos: Repos,
    flt: ActivityFilter | None = None,
    *,
    limit: int = 50,
    offset: int = 0,
) -> list[UserActivity]:
    return await repos.activities.query(
        flt or ActivityFilter(), offset=offset, limit=limit
    )


async def recalculate_all_time_spent(repos: Repos) -> int:
    """Recompute time spent for every enrollment; returns how many succeeded.

    One broken enrollment is logged and skipped rather than aborting the run.
    """
    updated = 0
    for enrollment_id in await repos.enrollments.list_ids():
        try:
            async with repos.savepoint():
                await compute_session_minutes(repos, enrollment_id)
            updated += 1
        except Exception:
            BEST_EFFORT_FAILURES.labels(operation="recalculate_time_spent").inc()
            logger.warning(
                "Time-spent recalculation failed",
                exc_info=True,
                extra={"enrollment_id": str(enrollment_id)},
            )
    logger.info("Recalculated time spent for %d enrollments", updated)
    return updated


async def mark_project_completed(repos: Repos, enrollment_id: UUID) -> Enrollment:
    """Stamp completed_at, log it, and congratulate the learner.

    The activity and the system message are both best effort.
    """
    enrollment = await repos.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")

    await repos.enrollments.set_completed_at(
        enrollment_id, datetime.datetime.now(datetime.UTC)
    )
    await record_activity(repos, enrollment_id, "STEP_COMPLETED", {"completed": True})

    if enrollment.user_id is not None:
        project = await repos.projects.get(enrollment.project_id)
        title = project.title if project is not None else "your project"
        try:
            async with repos.savepoint():
                await message_service.create_system_message(
                    repos,
                    recipient_id=enrollment.user_id,
                    title=COMPLETION_TITLE,
                    content=(
                        f'You\'ve successfully completed "{title}". '
                        "Well done! Keep up the great work."
                    ),
                )
        except Exception:
            BEST_EFFORT_FAILURES.labels(operation="completion_message").inc()
            logger.warning(
                "Could not send completion message",
                exc_info=True,
                extra={"enrollment_id": str(enrollment_id)},
            )

    logger.info(
        "Project completed  enrollment=%s", enrollment_id,
        extra={"enrollment_id": str(enrollment_id)},
    )
    updated = await repos.enrollments.get(enrollment_id)
    if updated is None:
        raise NotFoundError("Enrollment not found")
    return updated
