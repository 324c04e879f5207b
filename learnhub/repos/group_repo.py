from __future__ import annotations

import datetime
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learnhub.models.group import Group, GroupMember


class GroupRepo(Protocol):
    async def get(self, group_id: UUID) -> Group | None: ...
    async def add(self, group: Group) -> None: ...
    async def fill_second_member(
        self, group_id: UUID, member: GroupMember, at: datetime.datetime
    ) -> bool: ...
    async def delete(self, group_id: UUID) -> bool: ...


class InMemoryGroupRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Group] = {}

    async def get(self, group_id: UUID) -> Group | None:
        return self._by_id.get(group_id)

    async def add(self, group: Group) -> None:
        self._by_id[group.id] = group

    async def fill_second_member(
        self, group_id: UUID, member: GroupMember, at: datetime.datetime
    ) -> bool:
        """Set the second member only if the slot is still empty."""
        g = self._by_id.get(group_id)
        if g is None or g.has_second_member:
            return False
        self._by_id[group_id] = replace(
            g,
            second_member_name=member.name,
            second_member_email=member.email,
            second_member_phone_number=member.phone_number,
            second_member_school=member.school,
            second_member_class_num=member.class_num,
            updated_at=at,
        )
        return True

    async def delete(self, group_id: UUID) -> bool:
        return self._by_id.pop(group_id, None) is not None
