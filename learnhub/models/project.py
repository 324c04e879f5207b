from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

Level = Literal["BEGINNER", "INTERMEDIATE", "ADVANCED"]
Guidance = Literal["FULLY_GUIDED", "SEMI_GUIDED", "SELF_DIRECTED"]
SubmissionType = Literal["LINK", "TEXT", "FILE"]
ResourceType = Literal["LINK", "VIDEO", "PDF", "DOC"]


@dataclass(frozen=True, slots=True)
class Project:
    id: UUID
    slug: str
    title: str
    short_desc: str
    long_desc: str
    class_min: int
    class_max: int
    level: str  # BEGINNER|INTERMEDIATE|ADVANCED
    guidance: str  # FULLY_GUIDED|SEMI_GUIDED|SELF_DIRECTED
    duration_hrs: int
    created_at: datetime.datetime
    updated_at: datetime.datetime
    subjects: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    prerequisites: tuple[str, ...] = ()

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        short_desc: str,
        long_desc: str = "",
        class_min: int,
        class_max: int,
        level: str,
        guidance: str,
        duration_hrs: int,
        subjects: tuple[str, ...] = (),
        tags: tuple[str, ...] = (),
        tools: tuple[str, ...] = (),
        prerequisites: tuple[str, ...] = (),
    ) -> Project:
        now = datetime.datetime.now(datetime.UTC)
        return Project(
            id=uuid4(),
            slug=slug,
            title=title,
            short_desc=short_desc,
            long_desc=long_desc,
            class_min=class_min,
            class_max=class_max,
            level=level,
            guidance=guidance,
            duration_hrs=duration_hrs,
            created_at=now,
            updated_at=now,
            subjects=subjects,
            tags=tags,
            tools=tools,
            prerequisites=prerequisites,
        )


@dataclass(frozen=True, slots=True)
class Step:
    id: UUID
    project_id: UUID
    order: int
    title: str
    description: str = ""

    @staticmethod
    def new(*, project_id: UUID, order: int, title: str, description: str = "") -> Step:
        return Step(
            id=uuid4(),
            project_id=project_id,
            order=order,
            title=title,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    id: UUID
    step_id: UUID
    order: int
    text: str

    @staticmethod
    def new(*, step_id: UUID, order: int, text: str) -> ChecklistItem:
        return ChecklistItem(id=uuid4(), step_id=step_id, order=order, text=text)


@dataclass(frozen=True, slots=True)
class Resource:
    id: UUID
    step_id: UUID
    title: str
    url: str
    type: str = "LINK"  # LINK|VIDEO|PDF|DOC

    @staticmethod
    def new(*, step_id: UUID, title: str, url: str, type: str = "LINK") -> Resource:
        return Resource(id=uuid4(), step_id=step_id, title=title, url=url, type=type)


@dataclass(frozen=True, slots=True)
class SubmissionSpec:
    """How learners hand in their work for a project."""

    project_id: UUID
    type: str  # LINK|TEXT|FILE
    instruction: str
    allowed_types: tuple[str, ...] = ()  # lower-case extensions, FILE only


@dataclass(frozen=True, slots=True)
class ProjectContent:
    """A project with everything hanging off it, as imported or displayed."""

    project: Project
    steps: tuple[Step, ...] = ()
    checklist: tuple[ChecklistItem, ...] = ()
    resources: tuple[Resource, ...] = ()
    submission_spec: SubmissionSpec | None = None
