from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learnhub.models.enrollment import EnrollmentProgress


class ProgressRepo(Protocol):
    async def upsert(self, progress: EnrollmentProgress) -> EnrollmentProgress: ...
    async def list_for_enrollment(
        self, enrollment_id: UUID
    ) -> list[EnrollmentProgress]: ...
    async def delete_for_enrollment(self, enrollment_id: UUID) -> int: ...
    async def delete_for_steps(self, step_ids: Iterable[UUID]) -> int: ...
    async def delete_for_checklist_items(self, item_ids: Iterable[UUID]) -> int: ...


class InMemoryProgressRepo:
    """Rows keyed by (enrollment_id, step_id, checklist_id).

    Using the natural key as the dict key gives the same at-most-one-row
    guarantee the partial unique indexes give in PostgreSQL.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID, UUID | None], EnrollmentProgress] = {}

    async def upsert(self, progress: EnrollmentProgress) -> EnrollmentProgress:
        existing = self._store.get(progress.key)
        if existing is None:
            stored = progress
        else:
            stored = replace(
                existing,
                completed=progress.completed,
                updated_at=progress.updated_at,
            )
        self._store[progress.key] = stored
        return stored

    async def list_for_enrollment(
        self, enrollment_id: UUID
    ) -> list[EnrollmentProgress]:
        return [p for p in self._store.values() if p.enrollment_id == enrollment_id]

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        return self._delete_where(lambda p: p.enrollment_id == enrollment_id)

    async def delete_for_steps(self, step_ids: Iterable[UUID]) -> int:
        wanted = set(step_ids)
        return self._delete_where(lambda p: p.step_id in wanted)

    async def delete_for_checklist_items(self, item_ids: Iterable[UUID]) -> int:
        wanted = set(item_ids)
        return self._delete_where(lambda p: p.checklist_id in wanted)

    def _delete_where(self, predicate) -> int:
        doomed = [k for k, p in self._store.items() if predicate(p)]
        for k in doomed:
            del self._store[k]
        return len(doomed)
