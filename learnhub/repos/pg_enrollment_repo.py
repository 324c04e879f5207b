"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

import datetime
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import EnrollmentRow
from learnhub.models.enrollment import Enrollment
from learnhub.repos.enrollment_repo import EnrollmentFilter


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def add(self, enrollment: Enrollment) -> None:
        row = EnrollmentRow(
            id=enrollment.id,
            project_id=enrollment.project_id,
            email=enrollment.email,
            name=enrollment.name,
            school=enrollment.school,
            class_num=enrollment.class_num,
            user_id=enrollment.user_id,
            group_id=enrollment.group_id,
            created_at=enrollment.created_at,
            last_activity_at=enrollment.last_activity_at,
            completed_at=enrollment.completed_at,
            time_spent_minutes=enrollment.time_spent_minutes,
        )
        self._session.add(row)
        await self._session.flush()

    async def delete(self, enrollment_id: UUID) -> bool:
        stmt = delete(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_for_user(self, user_id: UUID) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.user_id == user_id)
            .order_by(EnrollmentRow.created_at.desc(), EnrollmentRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def link_user_by_email(self, email: str, user_id: UUID) -> int:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.email == email)
            .values(user_id=user_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def touch(self, enrollment_id: UUID, at: datetime.datetime) -> None:
        await self._set(enrollment_id, last_activity_at=at)

    async def set_time_spent(self, enrollment_id: UUID, minutes: int) -> None:
        await self._set(enrollment_id, time_spent_minutes=minutes)

    async def set_completed_at(
        self, enrollment_id: UUID, at: datetime.datetime
    ) -> None:
        await self._set(enrollment_id, completed_at=at)

    async def set_group(self, enrollment_id: UUID, group_id: UUID) -> None:
        await self._set(enrollment_id, group_id=group_id)

    async def count_by_group(self, group_id: UUID) -> int:
        stmt = select(func.count()).select_from(EnrollmentRow).where(
            EnrollmentRow.group_id == group_id
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def list_ids(self) -> list[UUID]:
        stmt = select(EnrollmentRow.id).order_by(EnrollmentRow.created_at)
        return list((await self._session.execute(stmt)).scalars().all())

    async def users_with_duplicates(self) -> list[UUID]:
        stmt = (
            select(EnrollmentRow.user_id)
            .where(EnrollmentRow.user_id.is_not(None))
            .group_by(EnrollmentRow.user_id)
            .having(func.count() > 1)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def search(
        self, flt: EnrollmentFilter, *, offset: int, limit: int
    ) -> tuple[list[Enrollment], int]:
        conditions = []
        if flt.search:
            pattern = f"%{flt.search}%"
            conditions.append(
                or_(
                    EnrollmentRow.email.ilike(pattern),
                    EnrollmentRow.name.ilike(pattern),
                    EnrollmentRow.school.ilike(pattern),
                )
            )
        if flt.project_id is not None:
            conditions.append(EnrollmentRow.project_id == flt.project_id)
        if flt.class_num is not None:
            conditions.append(EnrollmentRow.class_num == flt.class_num)
        if flt.created_from is not None:
            conditions.append(EnrollmentRow.created_at >= flt.created_from)
        if flt.created_to is not None:
            conditions.append(EnrollmentRow.created_at <= flt.created_to)
        if flt.completion_status == "completed":
            conditions.append(EnrollmentRow.completed_at.is_not(None))
        elif flt.completion_status == "in_progress":
            conditions.append(EnrollmentRow.completed_at.is_(None))
            conditions.append(EnrollmentRow.last_activity_at.is_not(None))
        elif flt.completion_status == "not_started":
            conditions.append(EnrollmentRow.last_activity_at.is_(None))

        total_stmt = select(func.count()).select_from(EnrollmentRow).where(*conditions)
        total = (await self._session.execute(total_stmt)).scalar_one()

        stmt = (
            select(EnrollmentRow)
            .where(*conditions)
            .order_by(EnrollmentRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows], total

    async def _set(self, enrollment_id: UUID, **values: object) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .values(**values)
        )
        await self._session.execute(stmt)


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        project_id=row.project_id,
        email=row.email,
        name=row.name,
        school=row.school,
        class_num=row.class_num,
        created_at=row.created_at,
        user_id=row.user_id,
        group_id=row.group_id,
        last_activity_at=row.last_activity_at,
        completed_at=row.completed_at,
        time_spent_minutes=row.time_spent_minutes,
    )
