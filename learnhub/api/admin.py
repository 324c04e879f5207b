"""Admin-only endpoints: learner roster, activity log, messaging.

"Users" in these paths are enrollments: the roster lists every learner
who joined a project, whether or not they registered an account.
"""

from __future__ import annotations

import datetime
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from learnhub.api.auth import ProgressSummaryOut
from learnhub.api.dependencies import AdminUser, RepoBundle
from learnhub.api.enrollments import (
    EnrollmentOut,
    SubmissionOut,
    enrollment_out,
    submission_out,
)
from learnhub.models.activity import ActivityType, UserActivity
from learnhub.models.message import Message
from learnhub.repos.activity_repo import ActivityFilter
from learnhub.repos.enrollment_repo import CompletionStatus, EnrollmentFilter
from learnhub.services import (
    activity_service,
    admin_service,
    message_service,
    progress_service,
)
from learnhub.services.admin_service import RosterEntry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class RosterEntryOut(BaseModel):
    enrollment: EnrollmentOut
    project_slug: str | None
    project_title: str | None
    progress: ProgressSummaryOut
    submission_count: int
    activity_count: int


class RosterPageOut(BaseModel):
    items: list[RosterEntryOut]
    page: int
    page_size: int
    total: int
    total_pages: int


class ActivityOut(BaseModel):
    id: UUID
    enrollment_id: UUID
    activity_type: str
    metadata_json: str | None
    created_at: datetime.datetime


class RosterDetailOut(RosterEntryOut):
    submissions: list[SubmissionOut]
    recent_activities: list[ActivityOut]


class ActivitySummaryOut(BaseModel):
    activity_counts: dict[str, int]
    total_activities: int
    time_spent_minutes: int
    first_activity: datetime.datetime | None
    last_activity: datetime.datetime | None


class RecalculateOut(BaseModel):
    updated: int


class ReconcileOut(BaseModel):
    users: int
    purged: dict[UUID, list[UUID]]


class AnnouncementIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=10_000)


class DirectMessageIn(AnnouncementIn):
    recipient_id: UUID


class MessageOut(BaseModel):
    id: UUID
    type: str
    title: str
    content: str
    recipient_id: UUID | None
    created_by_id: UUID | None
    created_at: datetime.datetime


class MessageStatsOut(MessageOut):
    read_count: int


class MessagePageOut(BaseModel):
    items: list[MessageStatsOut]
    page: int
    page_size: int
    total: int
    total_pages: int


def _entry_out(entry: RosterEntry) -> dict:
    p = entry.progress
    return dict(
        enrollment=enrollment_out(entry.enrollment),
        project_slug=entry.project.slug if entry.project else None,
        project_title=entry.project.title if entry.project else None,
        progress=ProgressSummaryOut(
            completed_steps=p.completed_steps,
            total_steps=p.total_steps,
            completion_percentage=p.completion_percentage,
            completed_checklists=p.completed_checklists,
            total_checklists=p.total_checklists,
        ),
        submission_count=entry.submission_count,
        activity_count=entry.activity_count,
    )


def _activity_out(a: UserActivity) -> ActivityOut:
    return ActivityOut(
        id=a.id,
        enrollment_id=a.enrollment_id,
        activity_type=a.activity_type,
        metadata_json=a.metadata_json,
        created_at=a.created_at,
    )


def _message_fields(m: Message) -> dict:
    return dict(
        id=m.id,
        type=m.type,
        title=m.title,
        content=m.content,
        recipient_id=m.recipient_id,
        created_by_id=m.created_by_id,
        created_at=m.created_at,
    )


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


@router.get("/users", response_model=RosterPageOut)
async def list_users(
    _admin: AdminUser,
    repos: RepoBundle,
    search: str | None = None,
    project_id: UUID | None = None,
    class_num: Annotated[int | None, Query(ge=1, le=12)] = None,
    completion_status: CompletionStatus = "all",
    created_from: datetime.datetime | None = None,
    created_to: datetime.datetime | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> RosterPageOut:
    result = await admin_service.list_roster(
        repos,
        EnrollmentFilter(
            search=search,
            project_id=project_id,
            class_num=class_num,
            completion_status=completion_status,
            created_from=created_from,
            created_to=created_to,
        ),
        page=page,
        page_size=page_size,
    )
    return RosterPageOut(
        items=[RosterEntryOut(**_entry_out(e)) for e in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/users/{enrollment_id}", response_model=RosterDetailOut)
async def get_user(
    enrollment_id: UUID, _admin: AdminUser, repos: RepoBundle
) -> RosterDetailOut:
    detail = await admin_service.roster_detail(repos, enrollment_id)
    return RosterDetailOut(
        **_entry_out(detail.entry),
        submissions=[submission_out(s) for s in detail.submissions],
        recent_activities=[_activity_out(a) for a in detail.recent_activities],
    )


@router.get("/users/{enrollment_id}/activity", response_model=ActivitySummaryOut)
async def get_user_activity(
    enrollment_id: UUID, _admin: AdminUser, repos: RepoBundle
) -> ActivitySummaryOut:
    summary = await activity_service.activity_summary(repos, enrollment_id)
    return ActivitySummaryOut(
        activity_counts=summary.activity_counts,
        total_activities=summary.total_activities,
        time_spent_minutes=summary.time_spent_minutes,
        first_activity=summary.first_activity,
        last_activity=summary.last_activity,
    )


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


@router.get("/activity", response_model=list[ActivityOut])
async def list_activity(
    _admin: AdminUser,
    repos: RepoBundle,
    enrollment_id: UUID | None = None,
    activity_type: ActivityType | None = None,
    start: datetime.datetime | None = None,
    end: datetime.datetime | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[ActivityOut]:
    activities = await activity_service.list_activities(
        repos,
        ActivityFilter(
            enrollment_id=enrollment_id, activity_type=activity_type, start=start, end=end
        ),
        limit=limit,
        offset=offset,
    )
    return [_activity_out(a) for a in activities]


@router.post("/activity/recalculate", response_model=RecalculateOut)
async def recalculate_time_spent(admin: AdminUser, repos: RepoBundle) -> RecalculateOut:
    updated = await activity_service.recalculate_all_time_spent(repos)
    logger.info("Time spent recalculated by admin=%s updated=%d", admin.user_id, updated)
    return RecalculateOut(updated=updated)


@router.post("/enrollments/reconcile", response_model=ReconcileOut)
async def reconcile_enrollments(admin: AdminUser, repos: RepoBundle) -> ReconcileOut:
    purged = await progress_service.reconcile_all_users(repos)
    logger.info(
        "Duplicate enrollments reconciled by admin=%s users=%d", admin.user_id, len(purged)
    )
    return ReconcileOut(users=len(purged), purged=purged)


# ---------------------------------------------------------------------------
# Messaging
# ---------------------------------------------------------------------------


@router.get("/messages", response_model=MessagePageOut)
async def list_messages(
    _admin: AdminUser,
    repos: RepoBundle,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> MessagePageOut:
    result = await message_service.list_all_messages(repos, page=page, page_size=page_size)
    return MessagePageOut(
        items=[
            MessageStatsOut(**_message_fields(s.message), read_count=s.read_count)
            for s in result.items
        ],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.post(
    "/messages/announcements", response_model=MessageOut, status_code=status.HTTP_201_CREATED
)
async def create_announcement(
    body: AnnouncementIn, admin: AdminUser, repos: RepoBundle
) -> MessageOut:
    message = await message_service.create_announcement(
        repos, title=body.title, content=body.content, created_by_id=admin.user_id
    )
    return MessageOut(**_message_fields(message))


@router.post("/messages/direct", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def create_direct_message(
    body: DirectMessageIn, admin: AdminUser, repos: RepoBundle
) -> MessageOut:
    message = await message_service.create_direct_message(
        repos,
        recipient_id=body.recipient_id,
        title=body.title,
        content=body.content,
        created_by_id=admin.user_id,
    )
    return MessageOut(**_message_fields(message))
