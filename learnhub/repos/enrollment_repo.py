from __future__ import annotations

import datetime
from collections import Counter
from dataclasses import dataclass, replace
from typing import Literal, Protocol
from uuid import UUID

from learnhub.models.enrollment import Enrollment

CompletionStatus = Literal["all", "completed", "in_progress", "not_started"]


@dataclass(frozen=True, slots=True)
class EnrollmentFilter:
    """Admin roster filters; None means "don't filter on this"."""

    search: str | None = None  # matches email, name or school
    project_id: UUID | None = None
    class_num: int | None = None
    completion_status: str = "all"
    created_from: datetime.datetime | None = None
    created_to: datetime.datetime | None = None


class EnrollmentRepo(Protocol):
    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def delete(self, enrollment_id: UUID) -> bool: ...
    async def list_for_user(self, user_id: UUID) -> list[Enrollment]: ...
    async def link_user_by_email(self, email: str, user_id: UUID) -> int: ...
    async def touch(self, enrollment_id: UUID, at: datetime.datetime) -> None: ...
    async def set_time_spent(self, enrollment_id: UUID, minutes: int) -> None: ...
    async def set_completed_at(
        self, enrollment_id: UUID, at: datetime.datetime
    ) -> None: ...
    async def set_group(self, enrollment_id: UUID, group_id: UUID) -> None: ...
    async def count_by_group(self, group_id: UUID) -> int: ...
    async def list_ids(self) -> list[UUID]: ...
    async def users_with_duplicates(self) -> list[UUID]: ...
    async def search(
        self, flt: EnrollmentFilter, *, offset: int, limit: int
    ) -> tuple[list[Enrollment], int]: ...


def _matches(e: Enrollment, flt: EnrollmentFilter) -> bool:
    if flt.search:
        needle = flt.search.lower()
        haystack = (e.email, e.name, e.school)
        if not any(needle in field.lower() for field in haystack):
            return False
    if flt.project_id is not None and e.project_id != flt.project_id:
        return False
    if flt.class_num is not None and e.class_num != flt.class_num:
        return False
    if flt.created_from is not None and e.created_at < flt.created_from:
        return False
    if flt.created_to is not None and e.created_at > flt.created_to:
        return False
    if flt.completion_status == "completed":
        return e.completed_at is not None
    if flt.completion_status == "in_progress":
        return e.completed_at is None and e.last_activity_at is not None
    if flt.completion_status == "not_started":
        return e.last_activity_at is None
    return True


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def add(self, enrollment: Enrollment) -> None:
        self._by_id[enrollment.id] = enrollment

    async def delete(self, enrollment_id: UUID) -> bool:
        return self._by_id.pop(enrollment_id, None) is not None

    async def list_for_user(self, user_id: UUID) -> list[Enrollment]:
        """Newest first."""
        mine = [e for e in self._by_id.values() if e.user_id == user_id]
        # Ties on created_at fall back to id, as in the Postgres repo.
        mine.sort(key=lambda e: e.id)
        return sorted(mine, key=lambda e: e.created_at, reverse=True)

    async def link_user_by_email(self, email: str, user_id: UUID) -> int:
        linked = 0
        for e in list(self._by_id.values()):
            if e.email == email:
                self._by_id[e.id] = replace(e, user_id=user_id)
                linked += 1
        return linked

    async def touch(self, enrollment_id: UUID, at: datetime.datetime) -> None:
        self._update(enrollment_id, last_activity_at=at)

    async def set_time_spent(self, enrollment_id: UUID, minutes: int) -> None:
        self._update(enrollment_id, time_spent_minutes=minutes)

    async def set_completed_at(
        self, enrollment_id: UUID, at: datetime.datetime
    ) -> None:
        self._update(enrollment_id, completed_at=at)

    async def set_group(self, enrollment_id: UUID, group_id: UUID) -> None:
        self._update(enrollment_id, group_id=group_id)

    async def count_by_group(self, group_id: UUID) -> int:
        return sum(1 for e in self._by_id.values() if e.group_id == group_id)

    async def list_ids(self) -> list[UUID]:
        return list(self._by_id)

    async def users_with_duplicates(self) -> list[UUID]:
        counts = Counter(e.user_id for e in self._by_id.values() if e.user_id is not None)
        return [user_id for user_id, n in counts.items() if n > 1]

    async def search(
        self, flt: EnrollmentFilter, *, offset: int, limit: int
    ) -> tuple[list[Enrollment], int]:
        found = [e for e in self._by_id.values() if _matches(e, flt)]
        found.sort(key=lambda e: e.created_at, reverse=True)
        return found[offset : offset + limit], len(found)

    def _update(self, enrollment_id: UUID, **changes: object) -> None:
        e = self._by_id.get(enrollment_id)
        if e is None:
            raise KeyError("enrollment not found")
        self._by_id[enrollment_id] = replace(e, **changes)  # type: ignore[arg-type]
