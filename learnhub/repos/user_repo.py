from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learnhub.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_phone(self, phone_number: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_phone: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_phone(self, phone_number: str) -> User | None:
        return self._by_phone.get(phone_number)

    async def add(self, user: User) -> None:
        if user.phone_number in self._by_phone:
            raise ValueError("phone number already exists")
        self._by_phone[user.phone_number] = user
        self._by_id[user.id] = user

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")

        updated = replace(u, password_hash=password_hash)
        self._by_id[user_id] = updated
        self._by_phone[updated.phone_number] = updated
