from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    phone_number: str
    password_hash: str
    created_at: datetime.datetime
    email: str | None = None
    name: str | None = None
    school: str | None = None
    class_num: int | None = None
    roles: tuple[str, ...] = ()  # immutable

    @staticmethod
    def new(
        *,
        phone_number: str,
        password_hash: str,
        email: str | None = None,
        name: str | None = None,
        school: str | None = None,
        class_num: int | None = None,
        roles: tuple[str, ...] = (),
    ) -> User:
        return User(
            id=uuid4(),
            phone_number=phone_number,
            password_hash=password_hash,
            created_at=datetime.datetime.now(datetime.UTC),
            email=email,
            name=name,
            school=school,
            class_num=class_num,
            roles=roles,
        )
