from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlparse
from uuid import UUID

from learnhub.core.errors import InvalidInputError, NotFoundError
from learnhub.models.enrollment import Enrollment, Submission
from learnhub.models.project import ChecklistItem, Project, Resource, Step, SubmissionSpec
from learnhub.repos.bundle import Repos
from learnhub.services import activity_service, progress_service

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True, slots=True)
class ChecklistEntry:
    item: ChecklistItem
    completed: bool


@dataclass(frozen=True, slots=True)
class StepDetail:
    step: Step
    completed: bool
    checklist: list[ChecklistEntry]
    resources: list[Resource]


@dataclass(frozen=True, slots=True)
class EnrollmentDetail:
    enrollment: Enrollment
    project: Project
    steps: list[StepDetail]
    completion_percentage: int


async def create_enrollment(
    repos: Repos,
    *,
    project_slug: str,
    email: str,
    name: str,
    school: str,
    class_num: int,
    user_id: UUID | None = None,
) -> Enrollment:
    email = email.lower().strip()
    if not _EMAIL_RE.match(email):
        raise InvalidInputError("Invalid email address")
    if not name.strip():
        raise InvalidInputError("Name is required")

    project = await repos.projects.get_by_slug(project_slug)
    if project is None:
        raise NotFoundError(f"Project with slug '{project_slug}' not found")

    enrollment = Enrollment.new(
        project_id=project.id,
        email=email,
        name=name.strip(),
        school=school.strip(),
        class_num=class_num,
        user_id=user_id,
    )
    await repos.enrollments.add(enrollment)
    logger.info(
        "Enrollment created  enrollment=%s project=%s",
        enrollment.id,
        project.slug,
        extra={"enrollment_id": str(enrollment.id)},
    )
    return enrollment


async def get_enrollment(repos: Repos, enrollment_id: UUID) -> Enrollment:
    enrollment = await repos.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    return enrollment


async def get_enrollment_detail(repos: Repos, enrollment_id: UUID) -> EnrollmentDetail:
    enrollment = await get_enrollment(repos, enrollment_id)
    project = await repos.projects.get(enrollment.project_id)
    if project is None:
        raise NotFoundError("Project not found")

    steps = await repos.projects.list_steps(project.id)
    step_ids = [s.id for s in steps]
    checklist = await repos.projects.list_checklist(step_ids)
    resources = await repos.projects.list_resources(step_ids)
    rows = await repos.progress.list_for_enrollment(enrollment_id)

    done_steps = {r.step_id for r in rows if r.completed and r.checklist_id is None}
    done_items = {r.checklist_id for r in rows if r.completed and r.checklist_id is not None}

    details = [
        StepDetail(
            step=step,
            completed=step.id in done_steps,
            checklist=[
                ChecklistEntry(item=c, completed=c.id in done_items)
                for c in checklist
                if c.step_id == step.id
            ],
            resources=[r for r in resources if r.step_id == step.id],
        )
        for step in steps
    ]
    return EnrollmentDetail(
        enrollment=enrollment,
        project=project,
        steps=details,
        completion_percentage=progress_service.percentage(len(done_steps), len(steps)),
    )


def _validate_submission(spec: SubmissionSpec, value: str) -> None:
    if spec.type == "LINK":
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInputError("Submission must be a valid http(s) URL")
    elif spec.type == "FILE" and spec.allowed_types:
        allowed = [t.lower().lstrip(".") for t in spec.allowed_types]
        extension = PurePosixPath(urlparse(value).path).suffix.lower().lstrip(".")
        if extension not in allowed:
            raise InvalidInputError(
                f"File type '{extension}' is not allowed. "
                f"Allowed types: {', '.join(allowed)}"
            )


async def create_submission(
    repos: Repos, enrollment_id: UUID, url_or_text: str
) -> Submission:
    """Hand in work for the enrollment's project.

    LINK needs an http(s) URL, TEXT any non-blank text, FILE a reference
    to the stored upload whose extension is in the allowed list.
    """
    enrollment = await get_enrollment(repos, enrollment_id)
    spec = await repos.projects.get_submission_spec(enrollment.project_id)
    if spec is None:
        raise InvalidInputError("This project does not require a submission")

    value = url_or_text.strip()
    if not value:
        raise InvalidInputError("Submission content is required")
    _validate_submission(spec, value)

    submission = Submission.new(enrollment_id=enrollment_id, url_or_text=value)
    await repos.submissions.add(submission)
    logger.info(
        "Submission created  enrollment=%s submission=%s",
        enrollment_id,
        submission.id,
        extra={"enrollment_id": str(enrollment_id)},
    )
    return submission


async def list_submissions(repos: Repos, enrollment_id: UUID) -> list[Submission]:
    await get_enrollment(repos, enrollment_id)
    return await repos.submissions.list_for_enrollment(enrollment_id)


async def finish_if_complete(repos: Repos, enrollment_id: UUID) -> bool:
    """Mark the project completed the first time every step is done.

    Returns True only on the call that performed the transition.
    """
    enrollment = await get_enrollment(repos, enrollment_id)
    if enrollment.completed_at is not None:
        return False
    pct = await progress_service.compute_completion_percentage(repos, enrollment_id)
    if pct < 100:
        return False
    await activity_service.mark_project_completed(repos, enrollment_id)
    return True
