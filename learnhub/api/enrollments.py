"""Enrollment endpoints: join a project, track progress, hand in work.

Progress and submission writes are followed by a best-effort activity
record; a failure there is logged and never fails the request.
"""

from __future__ import annotations

import datetime
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import CurrentUser, RepoBundle, optional_user
from learnhub.models.enrollment import Enrollment, Submission
from learnhub.models.group import Group, GroupMember
from learnhub.models.principal import Principal
from learnhub.services import (
    activity_service,
    cascade_service,
    enrollment_service,
    group_service,
    progress_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


class EnrollmentIn(BaseModel):
    project_slug: str = Field(min_length=1)
    email: str = Field(min_length=3, max_length=254)
    name: str = Field(min_length=1, max_length=200)
    school: str = Field(default="", max_length=200)
    class_num: int = Field(ge=1, le=12)


class EnrollmentOut(BaseModel):
    id: UUID
    project_id: UUID
    email: str
    name: str
    school: str
    class_num: int
    user_id: UUID | None
    group_id: UUID | None
    created_at: datetime.datetime
    last_activity_at: datetime.datetime | None
    completed_at: datetime.datetime | None
    time_spent_minutes: int | None


class ChecklistStateOut(BaseModel):
    id: UUID
    text: str
    completed: bool


class ResourceLinkOut(BaseModel):
    title: str
    url: str
    type: str


class StepStateOut(BaseModel):
    id: UUID
    order: int
    title: str
    description: str
    completed: bool
    checklist: list[ChecklistStateOut]
    resources: list[ResourceLinkOut]


class EnrollmentDetailOut(BaseModel):
    enrollment: EnrollmentOut
    project_slug: str
    project_title: str
    completion_percentage: int
    steps: list[StepStateOut]


class StepProgressIn(BaseModel):
    step_id: UUID
    completed: bool


class ChecklistProgressIn(BaseModel):
    checklist_item_id: UUID
    completed: bool


class ProgressOut(BaseModel):
    step_id: UUID
    checklist_id: UUID | None
    completed: bool
    completion_percentage: int
    project_completed: bool


class SubmissionIn(BaseModel):
    url_or_text: str = Field(min_length=1, max_length=5000)


class SubmissionOut(BaseModel):
    id: UUID
    enrollment_id: UUID
    url_or_text: str
    created_at: datetime.datetime


class GroupMemberIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str | None = None
    phone_number: str | None = None
    school: str | None = None
    class_num: int | None = Field(default=None, ge=1, le=12)


class GroupOut(BaseModel):
    id: UUID
    team_leader_id: UUID
    has_second_member: bool
    second_member_name: str | None
    second_member_email: str | None
    second_member_school: str | None
    second_member_class_num: int | None


class UnassignOut(BaseModel):
    success: bool


def enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        id=e.id,
        project_id=e.project_id,
        email=e.email,
        name=e.name,
        school=e.school,
        class_num=e.class_num,
        user_id=e.user_id,
        group_id=e.group_id,
        created_at=e.created_at,
        last_activity_at=e.last_activity_at,
        completed_at=e.completed_at,
        time_spent_minutes=e.time_spent_minutes,
    )


def submission_out(s: Submission) -> SubmissionOut:
    return SubmissionOut(
        id=s.id,
        enrollment_id=s.enrollment_id,
        url_or_text=s.url_or_text,
        created_at=s.created_at,
    )


def group_out(g: Group) -> GroupOut:
    return GroupOut(
        id=g.id,
        team_leader_id=g.team_leader_id,
        has_second_member=g.has_second_member,
        second_member_name=g.second_member_name,
        second_member_email=g.second_member_email,
        second_member_school=g.second_member_school,
        second_member_class_num=g.second_member_class_num,
    )


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    body: EnrollmentIn,
    repos: RepoBundle,
    principal: Annotated[Principal | None, Depends(optional_user)],
) -> EnrollmentOut:
    enrollment = await enrollment_service.create_enrollment(
        repos,
        project_slug=body.project_slug,
        email=body.email,
        name=body.name,
        school=body.school,
        class_num=body.class_num,
        user_id=principal.user_id if principal is not None else None,
    )
    await activity_service.record_activity(
        repos, enrollment.id, "ENROLLMENT_CREATED", {"project_slug": body.project_slug}
    )
    return enrollment_out(enrollment)


@router.get("/{enrollment_id}", response_model=EnrollmentDetailOut)
async def get_enrollment(enrollment_id: UUID, repos: RepoBundle) -> EnrollmentDetailOut:
    detail = await enrollment_service.get_enrollment_detail(repos, enrollment_id)
    return EnrollmentDetailOut(
        enrollment=enrollment_out(detail.enrollment),
        project_slug=detail.project.slug,
        project_title=detail.project.title,
        completion_percentage=detail.completion_percentage,
        steps=[
            StepStateOut(
                id=d.step.id,
                order=d.step.order,
                title=d.step.title,
                description=d.step.description,
                completed=d.completed,
                checklist=[
                    ChecklistStateOut(id=c.item.id, text=c.item.text, completed=c.completed)
                    for c in d.checklist
                ],
                resources=[
                    ResourceLinkOut(title=r.title, url=r.url, type=r.type) for r in d.resources
                ],
            )
            for d in detail.steps
        ],
    )


@router.patch("/{enrollment_id}/step", response_model=ProgressOut)
async def set_step(
    enrollment_id: UUID, body: StepProgressIn, repos: RepoBundle
) -> ProgressOut:
    row = await progress_service.set_step_completion(
        repos, enrollment_id, body.step_id, body.completed
    )
    if body.completed:
        await activity_service.record_activity(
            repos, enrollment_id, "STEP_COMPLETED", {"step_id": str(body.step_id)}
        )
    finished = await enrollment_service.finish_if_complete(repos, enrollment_id)
    return ProgressOut(
        step_id=row.step_id,
        checklist_id=None,
        completed=row.completed,
        completion_percentage=await progress_service.compute_completion_percentage(
            repos, enrollment_id
        ),
        project_completed=finished,
    )


@router.patch("/{enrollment_id}/checklist", response_model=ProgressOut)
async def set_checklist(
    enrollment_id: UUID, body: ChecklistProgressIn, repos: RepoBundle
) -> ProgressOut:
    row = await progress_service.set_checklist_completion(
        repos, enrollment_id, body.checklist_item_id, body.completed
    )
    if body.completed:
        await activity_service.record_activity(
            repos,
            enrollment_id,
            "CHECKLIST_COMPLETED",
            {"checklist_item_id": str(body.checklist_item_id)},
        )
    return ProgressOut(
        step_id=row.step_id,
        checklist_id=row.checklist_id,
        completed=row.completed,
        completion_percentage=await progress_service.compute_completion_percentage(
            repos, enrollment_id
        ),
        project_completed=False,
    )


@router.post(
    "/{enrollment_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_submission(
    enrollment_id: UUID, body: SubmissionIn, repos: RepoBundle
) -> SubmissionOut:
    submission = await enrollment_service.create_submission(
        repos, enrollment_id, body.url_or_text
    )
    await activity_service.record_activity(
        repos, enrollment_id, "SUBMISSION_CREATED", {"submission_id": str(submission.id)}
    )
    return submission_out(submission)


@router.get("/{enrollment_id}/submissions", response_model=list[SubmissionOut])
async def list_submissions(enrollment_id: UUID, repos: RepoBundle) -> list[SubmissionOut]:
    return [
        submission_out(s)
        for s in await enrollment_service.list_submissions(repos, enrollment_id)
    ]


@router.post("/{enrollment_id}/group-member", response_model=GroupOut)
async def add_group_member(
    enrollment_id: UUID, body: GroupMemberIn, repos: RepoBundle, principal: CurrentUser
) -> GroupOut:
    group = await group_service.add_member_to_enrollment(
        repos,
        enrollment_id,
        principal.user_id,
        GroupMember(
            name=body.name.strip(),
            email=body.email,
            phone_number=body.phone_number,
            school=body.school,
            class_num=body.class_num,
        ),
    )
    return group_out(group)


@router.post("/{enrollment_id}/unassign", response_model=UnassignOut)
async def unassign(
    enrollment_id: UUID, repos: RepoBundle, principal: CurrentUser
) -> UnassignOut:
    await cascade_service.delete_enrollment(repos, enrollment_id, principal.user_id)
    return UnassignOut(success=True)
