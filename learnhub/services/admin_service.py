from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from learnhub.models.activity import UserActivity
from learnhub.models.enrollment import Enrollment, Submission
from learnhub.models.page import Page
from learnhub.models.project import Project
from learnhub.repos.activity_repo import ActivityFilter
from learnhub.repos.bundle import Repos
from learnhub.repos.enrollment_repo import EnrollmentFilter
from learnhub.services import enrollment_service, progress_service
from learnhub.services.progress_service import ProgressSummary

RECENT_ACTIVITY_LIMIT = 50


@dataclass(frozen=True, slots=True)
class RosterEntry:
    enrollment: Enrollment
    project: Project | None
    progress: ProgressSummary
    submission_count: int
    activity_count: int


@dataclass(frozen=True, slots=True)
class RosterDetail:
    entry: RosterEntry
    submissions: list[Submission]
    recent_activities: list[UserActivity]


async def _entry(repos: Repos, enrollment: Enrollment) -> RosterEntry:
    counts = await repos.activities.count_by_type(enrollment.id)
    return RosterEntry(
        enrollment=enrollment,
        project=await repos.projects.get(enrollment.project_id),
        progress=await progress_service.summarize_progress(repos, enrollment),
        submission_count=len(await repos.submissions.list_for_enrollment(enrollment.id)),
        activity_count=sum(counts.values()),
    )


async def list_roster(
    repos: Repos, flt: EnrollmentFilter, *, page: int = 1, page_size: int = 20
) -> Page[RosterEntry]:
    enrollments, total = await repos.enrollments.search(
        flt, offset=Page.offset_for(page, page_size), limit=page_size
    )
    items = [await _entry(repos, e) for e in enrollments]
    return Page(items=items, page=page, page_size=page_size, total=total)


async def roster_detail(repos: Repos, enrollment_id: UUID) -> RosterDetail:
    enrollment = await enrollment_service.get_enrollment(repos, enrollment_id)
    return RosterDetail(
        entry=await _entry(repos, enrollment),
        submissions=await repos.submissions.list_for_enrollment(enrollment_id),
        recent_activities=await repos.activities.query(
            ActivityFilter(enrollment_id=enrollment_id),
            offset=0,
            limit=RECENT_ACTIVITY_LIMIT,
        ),
    )
