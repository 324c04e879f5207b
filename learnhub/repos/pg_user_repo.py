"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import UserRow
from learnhub.models.user import User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def get_by_phone(self, phone_number: str) -> User | None:
        stmt = select(UserRow).where(UserRow.phone_number == phone_number)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            phone_number=user.phone_number,
            email=user.email,
            password_hash=user.password_hash,
            name=user.name,
            school=user.school,
            class_num=user.class_num,
            roles=list(user.roles),
            created_at=user.created_at,
        )
        # Savepoint so a lost race on the unique phone number leaves the
        # outer transaction usable; callers see the same ValueError as the
        # in-memory repo.
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError:
            raise ValueError("phone number already exists") from None

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(password_hash=password_hash)
        )
        await self._session.execute(stmt)


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        phone_number=row.phone_number,
        password_hash=row.password_hash,
        created_at=row.created_at,
        email=row.email,
        name=row.name,
        school=row.school,
        class_num=row.class_num,
        roles=tuple(row.roles) if row.roles else (),
    )
