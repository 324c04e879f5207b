from __future__ import annotations

import datetime
from collections import Counter
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from learnhub.models.activity import UserActivity


@dataclass(frozen=True, slots=True)
class ActivityFilter:
    enrollment_id: UUID | None = None
    activity_type: str | None = None
    start: datetime.datetime | None = None
    end: datetime.datetime | None = None


class ActivityRepo(Protocol):
    async def add(self, activity: UserActivity) -> None: ...
    async def list_for_enrollment(self, enrollment_id: UUID) -> list[UserActivity]: ...
    async def query(
        self, flt: ActivityFilter, *, offset: int, limit: int
    ) -> list[UserActivity]: ...
    async def count_by_type(self, enrollment_id: UUID) -> dict[str, int]: ...
    async def delete_for_enrollment(self, enrollment_id: UUID) -> int: ...


class InMemoryActivityRepo:
    def __init__(self) -> None:
        self._rows: list[UserActivity] = []

    async def add(self, activity: UserActivity) -> None:
        self._rows.append(activity)

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[UserActivity]:
        """Oldest first."""
        mine = [a for a in self._rows if a.enrollment_id == enrollment_id]
        return sorted(mine, key=lambda a: a.created_at)

    async def query(
        self, flt: ActivityFilter, *, offset: int, limit: int
    ) -> list[UserActivity]:
        """Newest first."""
        found = [
            a
            for a in self._rows
            if (flt.enrollment_id is None or a.enrollment_id == flt.enrollment_id)
            and (flt.activity_type is None or a.activity_type == flt.activity_type)
            and (flt.start is None or a.created_at >= flt.start)
            and (flt.end is None or a.created_at <= flt.end)
        ]
        found.sort(key=lambda a: a.created_at, reverse=True)
        return found[offset : offset + limit]

    async def count_by_type(self, enrollment_id: UUID) -> dict[str, int]:
        return dict(
            Counter(a.activity_type for a in self._rows if a.enrollment_id == enrollment_id)
        )

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        before = len(self._rows)
        self._rows = [a for a in self._rows if a.enrollment_id != enrollment_id]
        return before - len(self._rows)
