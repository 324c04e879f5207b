from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.enrollment import Submission


class SubmissionRepo(Protocol):
    async def add(self, submission: Submission) -> None: ...
    async def list_for_enrollment(self, enrollment_id: UUID) -> list[Submission]: ...
    async def delete_for_enrollment(self, enrollment_id: UUID) -> int: ...


class InMemorySubmissionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Submission] = {}

    async def add(self, submission: Submission) -> None:
        self._by_id[submission.id] = submission

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[Submission]:
        """Newest first."""
        mine = [s for s in self._by_id.values() if s.enrollment_id == enrollment_id]
        return sorted(mine, key=lambda s: s.created_at, reverse=True)

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        doomed = [k for k, s in self._by_id.items() if s.enrollment_id == enrollment_id]
        for k in doomed:
            del self._by_id[k]
        return len(doomed)
