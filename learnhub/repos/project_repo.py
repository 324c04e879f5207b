from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from learnhub.models.project import (
    ChecklistItem,
    Project,
    Resource,
    Step,
    SubmissionSpec,
)


@dataclass(frozen=True, slots=True)
class ProjectFilter:
    class_num: int | None = None
    level: str | None = None
    guidance: str | None = None
    subject: str | None = None
    tags: tuple[str, ...] = ()
    q: str | None = None


class ProjectRepo(Protocol):
    async def get(self, project_id: UUID) -> Project | None: ...
    async def get_by_slug(self, slug: str) -> Project | None: ...
    async def add(self, project: Project) -> None: ...
    async def update(self, project: Project) -> None: ...
    async def search(
        self, flt: ProjectFilter, *, offset: int, limit: int
    ) -> tuple[list[Project], int]: ...
    async def list_steps(self, project_id: UUID) -> list[Step]: ...
    async def count_steps(self, project_id: UUID) -> int: ...
    async def get_checklist_item(self, item_id: UUID) -> ChecklistItem | None: ...
    async def list_checklist(self, step_ids: Iterable[UUID]) -> list[ChecklistItem]: ...
    async def list_resources(self, step_ids: Iterable[UUID]) -> list[Resource]: ...
    async def replace_content(
        self,
        project_id: UUID,
        steps: list[Step],
        checklist: list[ChecklistItem],
        resources: list[Resource],
    ) -> None: ...
    async def get_submission_spec(self, project_id: UUID) -> SubmissionSpec | None: ...
    async def set_submission_spec(
        self, project_id: UUID, spec: SubmissionSpec | None
    ) -> None: ...


def matches(project: Project, flt: ProjectFilter) -> bool:
    """In-process equivalent of the WHERE clause PgProjectRepo builds."""
    if flt.class_num is not None and not (
        project.class_min <= flt.class_num <= project.class_max
    ):
        return False
    if flt.level and project.level != flt.level:
        return False
    if flt.guidance and project.guidance != flt.guidance:
        return False
    if flt.subject and not any(
        flt.subject.lower() in s.lower() for s in project.subjects
    ):
        return False
    if flt.tags and not set(flt.tags) & set(project.tags):
        return False
    if flt.q:
        needle = flt.q.lower()
        if needle not in project.title.lower() and needle not in project.short_desc.lower():
            return False
    return True


class InMemoryProjectRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Project] = {}
        self._steps: dict[UUID, Step] = {}
        self._checklist: dict[UUID, ChecklistItem] = {}
        self._resources: dict[UUID, Resource] = {}
        self._specs: dict[UUID, SubmissionSpec] = {}

    async def get(self, project_id: UUID) -> Project | None:
        return self._by_id.get(project_id)

    async def get_by_slug(self, slug: str) -> Project | None:
        return next((p for p in self._by_id.values() if p.slug == slug), None)

    async def add(self, project: Project) -> None:
        if await self.get_by_slug(project.slug) is not None:
            raise ValueError("slug already exists")
        self._by_id[project.id] = project

    async def update(self, project: Project) -> None:
        if project.id not in self._by_id:
            raise KeyError("project not found")
        self._by_id[project.id] = project

    async def search(
        self, flt: ProjectFilter, *, offset: int, limit: int
    ) -> tuple[list[Project], int]:
        found = [p for p in self._by_id.values() if matches(p, flt)]
        found.sort(key=lambda p: p.created_at, reverse=True)
        return found[offset : offset + limit], len(found)

    async def list_steps(self, project_id: UUID) -> list[Step]:
        steps = [s for s in self._steps.values() if s.project_id == project_id]
        return sorted(steps, key=lambda s: s.order)

    async def count_steps(self, project_id: UUID) -> int:
        return sum(1 for s in self._steps.values() if s.project_id == project_id)

    async def get_checklist_item(self, item_id: UUID) -> ChecklistItem | None:
        return self._checklist.get(item_id)

    async def list_checklist(self, step_ids: Iterable[UUID]) -> list[ChecklistItem]:
        wanted = set(step_ids)
        items = [c for c in self._checklist.values() if c.step_id in wanted]
        return sorted(items, key=lambda c: c.order)

    async def list_resources(self, step_ids: Iterable[UUID]) -> list[Resource]:
        wanted = set(step_ids)
        return [r for r in self._resources.values() if r.step_id in wanted]

    async def replace_content(
        self,
        project_id: UUID,
        steps: list[Step],
        checklist: list[ChecklistItem],
        resources: list[Resource],
    ) -> None:
        old_step_ids = {s.id for s in self._steps.values() if s.project_id == project_id}
        for step_id in old_step_ids:
            del self._steps[step_id]
        self._checklist = {
            k: c for k, c in self._checklist.items() if c.step_id not in old_step_ids
        }
        self._resources = {
            k: r for k, r in self._resources.items() if r.step_id not in old_step_ids
        }
        self._steps.update({s.id: s for s in steps})
        self._checklist.update({c.id: c for c in checklist})
        self._resources.update({r.id: r for r in resources})

    async def get_submission_spec(self, project_id: UUID) -> SubmissionSpec | None:
        return self._specs.get(project_id)

    async def set_submission_spec(
        self, project_id: UUID, spec: SubmissionSpec | None
    ) -> None:
        if spec is None:
            self._specs.pop(project_id, None)
        else:
            self._specs[project_id] = spec
