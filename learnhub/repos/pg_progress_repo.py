"""PostgreSQL implementation of ProgressRepo.

Upserts use INSERT ... ON CONFLICT against the partial unique index that
matches the row's shape, so two concurrent completions of the same step
end as one row instead of a unique violation.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import EnrollmentProgressRow
from learnhub.models.enrollment import EnrollmentProgress


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, progress: EnrollmentProgress) -> EnrollmentProgress:
        stmt = insert(EnrollmentProgressRow).values(
            id=progress.id,
            enrollment_id=progress.enrollment_id,
            step_id=progress.step_id,
            checklist_id=progress.checklist_id,
            completed=progress.completed,
            updated_at=progress.updated_at,
        )
        if progress.checklist_id is None:
            stmt = stmt.on_conflict_do_update(
                index_elements=["enrollment_id", "step_id"],
                index_where=text("checklist_id IS NULL"),
                set_={"completed": progress.completed, "updated_at": progress.updated_at},
            )
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=["enrollment_id", "step_id", "checklist_id"],
                index_where=text("checklist_id IS NOT NULL"),
                set_={"completed": progress.completed, "updated_at": progress.updated_at},
            )
        rows = await self._session.scalars(
            stmt.returning(EnrollmentProgressRow),
            execution_options={"populate_existing": True},
        )
        return _row_to_progress(rows.one())

    async def list_for_enrollment(
        self, enrollment_id: UUID
    ) -> list[EnrollmentProgress]:
        stmt = select(EnrollmentProgressRow).where(
            EnrollmentProgressRow.enrollment_id == enrollment_id
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        stmt = delete(EnrollmentProgressRow).where(
            EnrollmentProgressRow.enrollment_id == enrollment_id
        )
        return (await self._session.execute(stmt)).rowcount

    async def delete_for_steps(self, step_ids: Iterable[UUID]) -> int:
        ids = list(step_ids)
        if not ids:
            return 0
        stmt = delete(EnrollmentProgressRow).where(
            EnrollmentProgressRow.step_id.in_(ids)
        )
        return (await self._session.execute(stmt)).rowcount

    async def delete_for_checklist_items(self, item_ids: Iterable[UUID]) -> int:
        ids = list(item_ids)
        if not ids:
            return 0
        stmt = delete(EnrollmentProgressRow).where(
            EnrollmentProgressRow.checklist_id.in_(ids)
        )
        return (await self._session.execute(stmt)).rowcount


def _row_to_progress(row: EnrollmentProgressRow) -> EnrollmentProgress:
    return EnrollmentProgress(
        id=row.id,
        enrollment_id=row.enrollment_id,
        step_id=row.step_id,
        checklist_id=row.checklist_id,
        completed=row.completed,
        updated_at=row.updated_at,
    )
