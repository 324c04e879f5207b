"""Enrollment progress engine.

Progress lives in one table with two row shapes:

  step row       (enrollment, step, checklist=None)  -> the step is done
  checklist row  (enrollment, step, checklist=item)  -> the item is ticked

Both are written with upserts, so repeating a request is a no-op and
concurrent writers converge on one row.  The completion percentage only
looks at step rows; ticking every checklist item does not complete a step.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.errors import NotFoundError
from learnhub.core.metrics import PROGRESS_UPDATES
from learnhub.models.enrollment import Enrollment, EnrollmentProgress
from learnhub.repos.bundle import Repos
from learnhub.services import cascade_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressSummary:
    completed_steps: int
    total_steps: int
    completion_percentage: int
    completed_checklists: int
    total_checklists: int


def round_half_up(value: float) -> int:
    """Round .5 away from zero for the non-negative values used here.

    ``round()`` uses banker's rounding (round(12.5) == 12); learners expect 13.
    """
    return math.floor(value + 0.5)


def percentage(done: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(100 * done / total)


async def _require_enrollment(repos: Repos, enrollment_id: UUID) -> Enrollment:
    enrollment = await repos.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    return enrollment


async def set_step_completion(
    repos: Repos, enrollment_id: UUID, step_id: UUID, completed: bool
) -> EnrollmentProgress:
    """Mark a step done or not done for an enrollment.

    Does not touch ``last_activity_at``; callers that want the activity
    recorded go through activity_service.
    """
    enrollment = await _require_enrollment(repos, enrollment_id)
    steps = await repos.projects.list_steps(enrollment.project_id)
    if step_id not in {s.id for s in steps}:
        raise NotFoundError("Step not found")

    row = await repos.progress.upsert(
        EnrollmentProgress.new(
            enrollment_id=enrollment_id,
            step_id=step_id,
            checklist_id=None,
            completed=completed,
        )
    )
    PROGRESS_UPDATES.labels(kind="step", completed=str(completed).lower()).inc()
    logger.debug(
        "Step progress set  enrollment=%s step=%s completed=%s",
        enrollment_id,
        step_id,
        completed,
    )
    return row


async def set_checklist_completion(
    repos: Repos, enrollment_id: UUID, checklist_item_id: UUID, completed: bool
) -> EnrollmentProgress:
    enrollment = await _require_enrollment(repos, enrollment_id)
    item = await repos.projects.get_checklist_item(checklist_item_id)
    if item is None:
        raise NotFoundError("Checklist item not found")
    steps = await repos.projects.list_steps(enrollment.project_id)
    if item.step_id not in {s.id for s in steps}:
        raise NotFoundError("Checklist item not found")

    row = await repos.progress.upsert(
        EnrollmentProgress.new(
            enrollment_id=enrollment_id,
            step_id=item.step_id,
            checklist_id=item.id,
            completed=completed,
        )
    )
    PROGRESS_UPDATES.labels(kind="checklist", completed=str(completed).lower()).inc()
    return row


def _completed_step_ids(rows: list[EnrollmentProgress]) -> set[UUID]:
    return {r.step_id for r in rows if r.completed and r.checklist_id is None}


async def compute_completion_percentage(repos: Repos, enrollment_id: UUID) -> int:
    enrollment = await _require_enrollment(repos, enrollment_id)
    total = await repos.projects.count_steps(enrollment.project_id)
    if total == 0:
        return 0
    rows = await repos.progress.list_for_enrollment(enrollment_id)
    return percentage(len(_completed_step_ids(rows)), total)


async def summarize_progress(repos: Repos, enrollment: Enrollment) -> ProgressSummary:
    steps = await repos.projects.list_steps(enrollment.project_id)
    items = await repos.projects.list_checklist(s.id for s in steps)
    rows = await repos.progress.list_for_enrollment(enrollment.id)

    item_ids = {i.id for i in items}
    done_items = {
        r.checklist_id
        for r in rows
        if r.completed and r.checklist_id is not None and r.checklist_id in item_ids
    }
    done_steps = _completed_step_ids(rows)

    return ProgressSummary(
        completed_steps=len(done_steps),
        total_steps=len(steps),
        completion_percentage=percentage(len(done_steps), len(steps)),
        completed_checklists=len(done_items),
        total_checklists=len(items),
    )


async def reconcile_duplicate_enrollments(repos: Repos, user_id: UUID) -> list[UUID]:
    """Keep only the user's most recent enrollment; purge the others.

    Returns the ids that were removed. Running it again is a no-op.
    """
    enrollments = await repos.enrollments.list_for_user(user_id)
    if len(enrollments) <= 1:
        return []

    keep, *extras = enrollments
    for extra in extras:
        await cascade_service.purge_enrollment(repos, extra, reason="reconcile")

    purged = [e.id for e in extras]
    logger.info(
        "Reconciled enrollments  user=%s kept=%s purged=%d",
        user_id,
        keep.id,
        len(purged),
        extra={"user_id": str(user_id)},
    )
    return purged


async def reconcile_all_users(repos: Repos) -> dict[UUID, list[UUID]]:
    """Run reconcile_duplicate_enrollments for every user who needs it."""
    purged: dict[UUID, list[UUID]] = {}
    for user_id in await repos.enrollments.users_with_duplicates():
        removed = await reconcile_duplicate_enrollments(repos, user_id)
        if removed:
            purged[user_id] = removed
    return purged
