from __future__ import annotations

import datetime
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import AdminUser, RepoBundle
from learnhub.models.project import (
    Guidance,
    Level,
    Project,
    ProjectContent,
    ResourceType,
    SubmissionType,
)
from learnhub.repos.project_repo import ProjectFilter
from learnhub.services import project_service
from learnhub.services.project_service import (
    ProjectDraft,
    ResourceDraft,
    StepDraft,
    SubmissionDraft,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectOut(BaseModel):
    id: UUID
    slug: str
    title: str
    short_desc: str
    long_desc: str
    class_min: int
    class_max: int
    level: str
    guidance: str
    duration_hrs: int
    subjects: list[str]
    tags: list[str]
    tools: list[str]
    prerequisites: list[str]
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ProjectPageOut(BaseModel):
    items: list[ProjectOut]
    page: int
    page_size: int
    total: int
    total_pages: int


class ChecklistItemOut(BaseModel):
    id: UUID
    order: int
    text: str


class ResourceOut(BaseModel):
    id: UUID
    title: str
    url: str
    type: str


class StepOut(BaseModel):
    id: UUID
    order: int
    title: str
    description: str
    checklist: list[ChecklistItemOut]
    resources: list[ResourceOut]


class SubmissionSpecOut(BaseModel):
    type: str
    instruction: str
    allowed_types: list[str]


class ProjectDetailOut(ProjectOut):
    steps: list[StepOut]
    submission: SubmissionSpecOut | None


class ResourceIn(BaseModel):
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    type: ResourceType = "LINK"


class StepIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    checklist: list[str] = []
    resources: list[ResourceIn] = []


class SubmissionIn(BaseModel):
    type: SubmissionType
    instruction: str = ""
    allowed_types: list[str] = []


class ProjectImportIn(BaseModel):
    slug: str = Field(min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    title: str = Field(min_length=1)
    short_desc: str
    long_desc: str = ""
    class_min: int = Field(ge=1, le=12)
    class_max: int = Field(ge=1, le=12)
    level: Level
    guidance: Guidance
    duration_hrs: int = Field(ge=0)
    subjects: list[str] = []
    tags: list[str] = []
    tools: list[str] = []
    prerequisites: list[str] = []
    steps: list[StepIn] = []
    submission: SubmissionIn | None = None


def project_out(p: Project) -> ProjectOut:
    return ProjectOut(
        id=p.id,
        slug=p.slug,
        title=p.title,
        short_desc=p.short_desc,
        long_desc=p.long_desc,
        class_min=p.class_min,
        class_max=p.class_max,
        level=p.level,
        guidance=p.guidance,
        duration_hrs=p.duration_hrs,
        subjects=list(p.subjects),
        tags=list(p.tags),
        tools=list(p.tools),
        prerequisites=list(p.prerequisites),
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


def _detail_out(content: ProjectContent) -> ProjectDetailOut:
    steps = [
        StepOut(
            id=s.id,
            order=s.order,
            title=s.title,
            description=s.description,
            checklist=[
                ChecklistItemOut(id=c.id, order=c.order, text=c.text)
                for c in content.checklist
                if c.step_id == s.id
            ],
            resources=[
                ResourceOut(id=r.id, title=r.title, url=r.url, type=r.type)
                for r in content.resources
                if r.step_id == s.id
            ],
        )
        for s in content.steps
    ]
    spec = content.submission_spec
    return ProjectDetailOut(
        **project_out(content.project).model_dump(),
        steps=steps,
        submission=(
            SubmissionSpecOut(
                type=spec.type,
                instruction=spec.instruction,
                allowed_types=list(spec.allowed_types),
            )
            if spec is not None
            else None
        ),
    )


@router.get("", response_model=ProjectPageOut)
async def list_projects(
    repos: RepoBundle,
    class_num: Annotated[int | None, Query(ge=1, le=12)] = None,
    level: Level | None = None,
    guidance: Guidance | None = None,
    subject: str | None = None,
    tags: Annotated[list[str], Query()] = [],
    q: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ProjectPageOut:
    result = await project_service.list_projects(
        repos,
        ProjectFilter(
            class_num=class_num,
            level=level,
            guidance=guidance,
            subject=subject,
            tags=tuple(tags),
            q=q,
        ),
        page=page,
        page_size=page_size,
    )
    return ProjectPageOut(
        items=[project_out(p) for p in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/{slug}", response_model=ProjectDetailOut)
async def get_project(slug: str, repos: RepoBundle) -> ProjectDetailOut:
    return _detail_out(await project_service.get_project(repos, slug))


@router.post("/import", response_model=ProjectDetailOut, status_code=status.HTTP_201_CREATED)
async def import_project(
    body: ProjectImportIn, repos: RepoBundle, principal: AdminUser
) -> ProjectDetailOut:
    draft = ProjectDraft(
        slug=body.slug,
        title=body.title,
        short_desc=body.short_desc,
        long_desc=body.long_desc,
        class_min=body.class_min,
        class_max=body.class_max,
        level=body.level,
        guidance=body.guidance,
        duration_hrs=body.duration_hrs,
        subjects=tuple(body.subjects),
        tags=tuple(body.tags),
        tools=tuple(body.tools),
        prerequisites=tuple(body.prerequisites),
        steps=tuple(
            StepDraft(
                title=s.title,
                description=s.description,
                checklist=tuple(s.checklist),
                resources=tuple(
                    ResourceDraft(title=r.title, url=r.url, type=r.type) for r in s.resources
                ),
            )
            for s in body.steps
        ),
        submission=(
            SubmissionDraft(
                type=body.submission.type,
                instruction=body.submission.instruction,
                allowed_types=tuple(body.submission.allowed_types),
            )
            if body.submission is not None
            else None
        ),
    )
    project = await project_service.import_project(repos, draft)
    logger.info("Project imported by admin=%s slug=%s", principal.user_id, project.slug)
    return _detail_out(await project_service.get_project(repos, project.slug))
