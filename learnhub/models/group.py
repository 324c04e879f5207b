from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class GroupMember:
    """Contact details of the second member; only the name is required."""

    name: str
    email: str | None = None
    phone_number: str | None = None
    school: str | None = None
    class_num: int | None = None


@dataclass(frozen=True, slots=True)
class Group:
    id: UUID
    team_leader_id: UUID
    created_at: datetime.datetime
    updated_at: datetime.datetime
    second_member_name: str | None = None
    second_member_email: str | None = None
    second_member_phone_number: str | None = None
    second_member_school: str | None = None
    second_member_class_num: int | None = None

    @property
    def has_second_member(self) -> bool:
        return bool(self.second_member_name)

    @staticmethod
    def new(*, team_leader_id: UUID, second_member: GroupMember | None = None) -> Group:
        now = datetime.datetime.now(datetime.UTC)
        member = second_member or GroupMember(name="")
        return Group(
            id=uuid4(),
            team_leader_id=team_leader_id,
            created_at=now,
            updated_at=now,
            second_member_name=member.name.strip() or None,
            second_member_email=member.email,
            second_member_phone_number=member.phone_number,
            second_member_school=member.school,
            second_member_class_num=member.class_num,
        )
