"""PostgreSQL implementation of MessageRepo.

Visibility (announcements for everyone, direct and system messages for
their recipient) is expressed once in ``_visible_to`` and reused by the
listing and unread-count queries.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import MessageReadRow, MessageRow
from learnhub.models.message import Message, MessageRead


def _visible_to(user_id: UUID):
    return or_(MessageRow.type == "ANNOUNCEMENT", MessageRow.recipient_id == user_id)


class PgMessageRepo:
    """Satisfies the MessageRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, message_id: UUID) -> Message | None:
        row = await self._session.get(MessageRow, message_id)
        return _row_to_message(row) if row is not None else None

    async def add(self, message: Message) -> None:
        self._session.add(
            MessageRow(
                id=message.id,
                type=message.type,
                title=message.title,
                content=message.content,
                recipient_id=message.recipient_id,
                created_by_id=message.created_by_id,
                created_at=message.created_at,
            )
        )
        await self._session.flush()

    async def list_visible(
        self, user_id: UUID, *, offset: int, limit: int
    ) -> tuple[list[Message], int]:
        total_stmt = (
            select(func.count()).select_from(MessageRow).where(_visible_to(user_id))
        )
        total = (await self._session.execute(total_stmt)).scalar_one()
        stmt = (
            select(MessageRow)
            .where(_visible_to(user_id))
            .order_by(MessageRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_message(r) for r in rows], total

    async def count_unread(self, user_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageRow)
            .outerjoin(
                MessageReadRow,
                and_(
                    MessageReadRow.message_id == MessageRow.id,
                    MessageReadRow.user_id == user_id,
                ),
            )
            .where(_visible_to(user_id), MessageReadRow.message_id.is_(None))
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def reads_for(
        self, user_id: UUID, message_ids: Iterable[UUID]
    ) -> dict[UUID, MessageRead]:
        ids = list(message_ids)
        if not ids:
            return {}
        stmt = select(MessageReadRow).where(
            MessageReadRow.user_id == user_id, MessageReadRow.message_id.in_(ids)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return {
            r.message_id: MessageRead(
                message_id=r.message_id, user_id=r.user_id, read_at=r.read_at
            )
            for r in rows
        }

    async def add_read(
        self, message_id: UUID, user_id: UUID, at: datetime.datetime
    ) -> bool:
        # ON CONFLICT DO NOTHING on the composite primary key: when two
        # requests race, the loser inserts zero rows instead of failing.
        stmt = (
            insert(MessageReadRow)
            .values(message_id=message_id, user_id=user_id, read_at=at)
            .on_conflict_do_nothing(index_elements=["message_id", "user_id"])
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_all(self, *, offset: int, limit: int) -> tuple[list[Message], int]:
        total = (
            await self._session.execute(select(func.count()).select_from(MessageRow))
        ).scalar_one()
        stmt = (
            select(MessageRow)
            .order_by(MessageRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_message(r) for r in rows], total

    async def read_counts(self, message_ids: Iterable[UUID]) -> dict[UUID, int]:
        ids = list(message_ids)
        counts = {mid: 0 for mid in ids}
        if not ids:
            return counts
        stmt = (
            select(MessageReadRow.message_id, func.count())
            .where(MessageReadRow.message_id.in_(ids))
            .group_by(MessageReadRow.message_id)
        )
        for mid, n in (await self._session.execute(stmt)).all():
            counts[mid] = n
        return counts


def _row_to_message(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        type=row.type,
        title=row.title,
        content=row.content,
        created_at=row.created_at,
        recipient_id=row.recipient_id,
        created_by_id=row.created_by_id,
    )
