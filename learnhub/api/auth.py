"""Learner account endpoints.

Register and login both answer with a bearer token, so the client is
signed in straight after registering.  /auth/me reconciles duplicate
enrollments before it reads them.
"""

from __future__ import annotations

import datetime
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import CurrentUser, RepoBundle
from learnhub.api.enrollments import EnrollmentOut, GroupOut, enrollment_out, group_out
from learnhub.api.ratelimit import require_rate_limit
from learnhub.models.user import User
from learnhub.services import account_service, token_service
from learnhub.services.rate_limiter import AUTH_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterIn(BaseModel):
    enrollment_id: UUID
    phone_number: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=256)
    name: str | None = None
    school: str | None = None
    class_num: int | None = Field(default=None, ge=1, le=12)


class LoginIn(BaseModel):
    phone_number: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=256)


class UserOut(BaseModel):
    id: UUID
    phone_number: str
    email: str | None
    name: str | None
    school: str | None
    class_num: int | None
    roles: list[str]
    created_at: datetime.datetime


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ProgressSummaryOut(BaseModel):
    completed_steps: int
    total_steps: int
    completion_percentage: int
    completed_checklists: int
    total_checklists: int


class ProfileEnrollmentOut(BaseModel):
    enrollment: EnrollmentOut
    project_slug: str | None
    project_title: str | None
    group: GroupOut | None
    progress: ProgressSummaryOut


class ProfileOut(BaseModel):
    user: UserOut
    enrollments: list[ProfileEnrollmentOut]


def user_out(u: User) -> UserOut:
    return UserOut(
        id=u.id,
        phone_number=u.phone_number,
        email=u.email,
        name=u.name,
        school=u.school,
        class_num=u.class_num,
        roles=list(u.roles),
        created_at=u.created_at,
    )


def _token_for(user: User) -> TokenOut:
    token = token_service.create_access_token(
        sub=str(user.id), phone=user.phone_number, roles=list(user.roles) or ["user"]
    )
    return TokenOut(access_token=token, user=user_out(user))


@router.post(
    "/register",
    response_model=TokenOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit("auth", AUTH_LIMIT))],
)
async def register(body: RegisterIn, repos: RepoBundle) -> TokenOut:
    user = await account_service.register(
        repos,
        enrollment_id=body.enrollment_id,
        phone_number=body.phone_number,
        password=body.password,
        name=body.name,
        school=body.school,
        class_num=body.class_num,
    )
    return _token_for(user)


@router.post(
    "/login",
    response_model=TokenOut,
    dependencies=[Depends(require_rate_limit("auth", AUTH_LIMIT))],
)
async def login(body: LoginIn, repos: RepoBundle) -> TokenOut:
    user = await account_service.login(repos, body.phone_number, body.password)
    logger.info("Login succeeded user=%s", user.id, extra={"user_id": str(user.id)})
    return _token_for(user)


@router.get("/me", response_model=ProfileOut)
async def me(principal: CurrentUser, repos: RepoBundle) -> ProfileOut:
    profile = await account_service.get_profile(repos, principal.user_id)
    return ProfileOut(
        user=user_out(profile.user),
        enrollments=[
            ProfileEnrollmentOut(
                enrollment=enrollment_out(p.enrollment),
                project_slug=p.project.slug if p.project else None,
                project_title=p.project.title if p.project else None,
                group=group_out(p.group) if p.group else None,
                progress=ProgressSummaryOut(
                    completed_steps=p.progress.completed_steps,
                    total_steps=p.progress.total_steps,
                    completion_percentage=p.progress.completion_percentage,
                    completed_checklists=p.progress.completed_checklists,
                    total_checklists=p.progress.total_checklists,
                ),
            )
            for p in profile.enrollments
        ],
    )
