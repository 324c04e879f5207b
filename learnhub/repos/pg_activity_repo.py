"""PostgreSQL implementation of ActivityRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import UserActivityRow
from learnhub.models.activity import UserActivity
from learnhub.repos.activity_repo import ActivityFilter


class PgActivityRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, activity: UserActivity) -> None:
        self._session.add(
            UserActivityRow(
                id=activity.id,
                enrollment_id=activity.enrollment_id,
                activity_type=activity.activity_type,
                metadata_json=activity.metadata_json,
                created_at=activity.created_at,
            )
        )
        await self._session.flush()

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[UserActivity]:
        stmt = (
            select(UserActivityRow)
            .where(UserActivityRow.enrollment_id == enrollment_id)
            .order_by(UserActivityRow.created_at.asc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_activity(r) for r in rows]

    async def query(
        self, flt: ActivityFilter, *, offset: int, limit: int
    ) -> list[UserActivity]:
        stmt = select(UserActivityRow)
        if flt.enrollment_id is not None:
            stmt = stmt.where(UserActivityRow.enrollment_id == flt.enrollment_id)
        if flt.activity_type is not None:
            stmt = stmt.where(UserActivityRow.activity_type == flt.activity_type)
        if flt.start is not None:
            stmt = stmt.where(UserActivityRow.created_at >= flt.start)
        if flt.end is not None:
            stmt = stmt.where(UserActivityRow.created_at <= flt.end)
        stmt = (
            stmt.order_by(UserActivityRow.created_at.desc()).offset(offset).limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_activity(r) for r in rows]

    async def count_by_type(self, enrollment_id: UUID) -> dict[str, int]:
        stmt = (
            select(UserActivityRow.activity_type, func.count())
            .where(UserActivityRow.enrollment_id == enrollment_id)
            .group_by(UserActivityRow.activity_type)
        )
        return {t: n for t, n in (await self._session.execute(stmt)).all()}

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        stmt = delete(UserActivityRow).where(
            UserActivityRow.enrollment_id == enrollment_id
        )
        return (await self._session.execute(stmt)).rowcount


def _row_to_activity(row: UserActivityRow) -> UserActivity:
    return UserActivity(
        id=row.id,
        enrollment_id=row.enrollment_id,
        activity_type=row.activity_type,
        created_at=row.created_at,
        metadata_json=row.metadata_json,
    )
