"""PostgreSQL implementation of ProjectRepo."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import (
    ChecklistItemRow,
    ProjectRow,
    ResourceRow,
    StepRow,
    SubmissionSpecRow,
)
from learnhub.models.project import (
    ChecklistItem,
    Project,
    Resource,
    Step,
    SubmissionSpec,
)
from learnhub.repos.project_repo import ProjectFilter


class PgProjectRepo:
    """Satisfies the ProjectRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, project_id: UUID) -> Project | None:
        row = await self._session.get(ProjectRow, project_id)
        return _row_to_project(row) if row is not None else None

    async def get_by_slug(self, slug: str) -> Project | None:
        stmt = select(ProjectRow).where(ProjectRow.slug == slug)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_project(row) if row is not None else None

    async def add(self, project: Project) -> None:
        self._session.add(ProjectRow(**_project_values(project), id=project.id))
        await self._session.flush()

    async def update(self, project: Project) -> None:
        stmt = (
            update(ProjectRow)
            .where(ProjectRow.id == project.id)
            .values(**_project_values(project))
        )
        await self._session.execute(stmt)

    async def search(
        self, flt: ProjectFilter, *, offset: int, limit: int
    ) -> tuple[list[Project], int]:
        conditions = []
        if flt.class_num is not None:
            conditions.append(ProjectRow.class_min <= flt.class_num)
            conditions.append(ProjectRow.class_max >= flt.class_num)
        if flt.level:
            conditions.append(ProjectRow.level == flt.level)
        if flt.guidance:
            conditions.append(ProjectRow.guidance == flt.guidance)
        if flt.subject:
            conditions.append(
                func.array_to_string(ProjectRow.subjects, "|").ilike(f"%{flt.subject}%")
            )
        if flt.tags:
            conditions.append(ProjectRow.tags.overlap(list(flt.tags)))
        if flt.q:
            pattern = f"%{flt.q}%"
            conditions.append(
                or_(ProjectRow.title.ilike(pattern), ProjectRow.short_desc.ilike(pattern))
            )

        total_stmt = select(func.count()).select_from(ProjectRow).where(*conditions)
        total = (await self._session.execute(total_stmt)).scalar_one()

        stmt = (
            select(ProjectRow)
            .where(*conditions)
            .order_by(ProjectRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_project(r) for r in rows], total

    async def list_steps(self, project_id: UUID) -> list[Step]:
        stmt = (
            select(StepRow)
            .where(StepRow.project_id == project_id)
            .order_by(StepRow.order)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_step(r) for r in rows]

    async def count_steps(self, project_id: UUID) -> int:
        stmt = select(func.count()).select_from(StepRow).where(
            StepRow.project_id == project_id
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def get_checklist_item(self, item_id: UUID) -> ChecklistItem | None:
        row = await self._session.get(ChecklistItemRow, item_id)
        return _row_to_checklist(row) if row is not None else None

    async def list_checklist(self, step_ids: Iterable[UUID]) -> list[ChecklistItem]:
        ids = list(step_ids)
        if not ids:
            return []
        stmt = (
            select(ChecklistItemRow)
            .where(ChecklistItemRow.step_id.in_(ids))
            .order_by(ChecklistItemRow.order)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_checklist(r) for r in rows]

    async def list_resources(self, step_ids: Iterable[UUID]) -> list[Resource]:
        ids = list(step_ids)
        if not ids:
            return []
        stmt = select(ResourceRow).where(ResourceRow.step_id.in_(ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            Resource(id=r.id, step_id=r.step_id, title=r.title, url=r.url, type=r.type)
            for r in rows
        ]

    async def replace_content(
        self,
        project_id: UUID,
        steps: list[Step],
        checklist: list[ChecklistItem],
        resources: list[Resource],
    ) -> None:
        # Callers reuse ids for steps and items that survive, and have already
        # removed progress rows pointing at the ones that don't.
        old_step_ids = select(StepRow.id).where(StepRow.project_id == project_id)
        keep_steps = [s.id for s in steps]
        keep_items = [c.id for c in checklist]

        await self._session.execute(
            delete(ResourceRow).where(ResourceRow.step_id.in_(old_step_ids))
        )
        await self._session.execute(
            delete(ChecklistItemRow).where(
                ChecklistItemRow.step_id.in_(old_step_ids),
                ChecklistItemRow.id.not_in(keep_items),
            )
        )
        await self._session.execute(
            delete(StepRow).where(
                StepRow.project_id == project_id, StepRow.id.not_in(keep_steps)
            )
        )

        for s in steps:
            await self._session.merge(
                StepRow(
                    id=s.id,
                    project_id=s.project_id,
                    order=s.order,
                    title=s.title,
                    description=s.description,
                )
            )
        await self._session.flush()
        for c in checklist:
            await self._session.merge(
                ChecklistItemRow(id=c.id, step_id=c.step_id, order=c.order, text=c.text)
            )
        for r in resources:
            self._session.add(
                ResourceRow(id=r.id, step_id=r.step_id, title=r.title, url=r.url, type=r.type)
            )
        await self._session.flush()

    async def get_submission_spec(self, project_id: UUID) -> SubmissionSpec | None:
        row = await self._session.get(SubmissionSpecRow, project_id)
        if row is None:
            return None
        return SubmissionSpec(
            project_id=row.project_id,
            type=row.type,
            instruction=row.instruction,
            allowed_types=tuple(row.allowed_types or ()),
        )

    async def set_submission_spec(
        self, project_id: UUID, spec: SubmissionSpec | None
    ) -> None:
        await self._session.execute(
            delete(SubmissionSpecRow).where(SubmissionSpecRow.project_id == project_id)
        )
        if spec is not None:
            self._session.add(
                SubmissionSpecRow(
                    project_id=project_id,
                    type=spec.type,
                    instruction=spec.instruction,
                    allowed_types=list(spec.allowed_types),
                )
            )
        await self._session.flush()


def _project_values(project: Project) -> dict:
    return {
        "slug": project.slug,
        "title": project.title,
        "short_desc": project.short_desc,
        "long_desc": project.long_desc,
        "class_min": project.class_min,
        "class_max": project.class_max,
        "level": project.level,
        "guidance": project.guidance,
        "duration_hrs": project.duration_hrs,
        "subjects": list(project.subjects),
        "tags": list(project.tags),
        "tools": list(project.tools),
        "prerequisites": list(project.prerequisites),
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }


def _row_to_project(row: ProjectRow) -> Project:
    return Project(
        id=row.id,
        slug=row.slug,
        title=row.title,
        short_desc=row.short_desc,
        long_desc=row.long_desc,
        class_min=row.class_min,
        class_max=row.class_max,
        level=row.level,
        guidance=row.guidance,
        duration_hrs=row.duration_hrs,
        created_at=row.created_at,
        updated_at=row.updated_at,
        subjects=tuple(row.subjects or ()),
        tags=tuple(row.tags or ()),
        tools=tuple(row.tools or ()),
        prerequisites=tuple(row.prerequisites or ()),
    )


def _row_to_step(row: StepRow) -> Step:
    return Step(
        id=row.id,
        project_id=row.project_id,
        order=row.order,
        title=row.title,
        description=row.description,
    )


def _row_to_checklist(row: ChecklistItemRow) -> ChecklistItem:
    return ChecklistItem(id=row.id, step_id=row.step_id, order=row.order, text=row.text)
