"""PostgreSQL implementation of SubmissionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import SubmissionRow
from learnhub.models.enrollment import Submission


class PgSubmissionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, submission: Submission) -> None:
        self._session.add(
            SubmissionRow(
                id=submission.id,
                enrollment_id=submission.enrollment_id,
                url_or_text=submission.url_or_text,
                created_at=submission.created_at,
            )
        )
        await self._session.flush()

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(SubmissionRow.enrollment_id == enrollment_id)
            .order_by(SubmissionRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            Submission(
                id=r.id,
                enrollment_id=r.enrollment_id,
                url_or_text=r.url_or_text,
                created_at=r.created_at,
            )
            for r in rows
        ]

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        stmt = delete(SubmissionRow).where(SubmissionRow.enrollment_id == enrollment_id)
        return (await self._session.execute(stmt)).rowcount
