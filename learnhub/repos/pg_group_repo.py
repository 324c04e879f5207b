"""PostgreSQL implementation of GroupRepo."""

from __future__ import annotations

import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import GroupRow
from learnhub.models.group import Group, GroupMember


class PgGroupRepo:
    """Satisfies the GroupRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, group_id: UUID) -> Group | None:
        stmt = select(GroupRow).where(GroupRow.id == group_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_group(row)

    async def add(self, group: Group) -> None:
        self._session.add(
            GroupRow(
                id=group.id,
                team_leader_id=group.team_leader_id,
                second_member_name=group.second_member_name,
                second_member_email=group.second_member_email,
                second_member_phone_number=group.second_member_phone_number,
                second_member_school=group.second_member_school,
                second_member_class_num=group.second_member_class_num,
                created_at=group.created_at,
                updated_at=group.updated_at,
            )
        )
        await self._session.flush()

    async def fill_second_member(
        self, group_id: UUID, member: GroupMember, at: datetime.datetime
    ) -> bool:
        # The emptiness test is part of the UPDATE, so of two concurrent
        # adds exactly one matches the row.
        stmt = (
            update(GroupRow)
            .where(
                GroupRow.id == group_id,
                or_(
                    GroupRow.second_member_name.is_(None),
                    GroupRow.second_member_name == "",
                ),
            )
            .values(
                second_member_name=member.name,
                second_member_email=member.email,
                second_member_phone_number=member.phone_number,
                second_member_school=member.school,
                second_member_class_num=member.class_num,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def delete(self, group_id: UUID) -> bool:
        stmt = delete(GroupRow).where(GroupRow.id == group_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0


def _row_to_group(row: GroupRow) -> Group:
    return Group(
        id=row.id,
        team_leader_id=row.team_leader_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        second_member_name=row.second_member_name,
        second_member_email=row.second_member_email,
        second_member_phone_number=row.second_member_phone_number,
        second_member_school=row.second_member_school,
        second_member_class_num=row.second_member_class_num,
    )
