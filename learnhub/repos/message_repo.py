from __future__ import annotations

import datetime
from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from learnhub.models.message import Message, MessageRead


class MessageRepo(Protocol):
    async def get(self, message_id: UUID) -> Message | None: ...
    async def add(self, message: Message) -> None: ...
    async def list_visible(
        self, user_id: UUID, *, offset: int, limit: int
    ) -> tuple[list[Message], int]: ...
    async def count_unread(self, user_id: UUID) -> int: ...
    async def reads_for(
        self, user_id: UUID, message_ids: Iterable[UUID]
    ) -> dict[UUID, MessageRead]: ...
    async def add_read(
        self, message_id: UUID, user_id: UUID, at: datetime.datetime
    ) -> bool: ...
    async def list_all(self, *, offset: int, limit: int) -> tuple[list[Message], int]: ...
    async def read_counts(self, message_ids: Iterable[UUID]) -> dict[UUID, int]: ...


class InMemoryMessageRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Message] = {}
        self._reads: dict[tuple[UUID, UUID], MessageRead] = {}

    async def get(self, message_id: UUID) -> Message | None:
        return self._by_id.get(message_id)

    async def add(self, message: Message) -> None:
        self._by_id[message.id] = message

    async def list_visible(
        self, user_id: UUID, *, offset: int, limit: int
    ) -> tuple[list[Message], int]:
        visible = [m for m in self._by_id.values() if m.is_visible_to(user_id)]
        visible.sort(key=lambda m: m.created_at, reverse=True)
        return visible[offset : offset + limit], len(visible)

    async def count_unread(self, user_id: UUID) -> int:
        return sum(
            1
            for m in self._by_id.values()
            if m.is_visible_to(user_id) and (m.id, user_id) not in self._reads
        )

    async def reads_for(
        self, user_id: UUID, message_ids: Iterable[UUID]
    ) -> dict[UUID, MessageRead]:
        return {
            mid: self._reads[(mid, user_id)]
            for mid in message_ids
            if (mid, user_id) in self._reads
        }

    async def add_read(
        self, message_id: UUID, user_id: UUID, at: datetime.datetime
    ) -> bool:
        """Insert-if-absent. Returns False when the receipt already existed."""
        key = (message_id, user_id)
        if key in self._reads:
            return False
        self._reads[key] = MessageRead(message_id=message_id, user_id=user_id, read_at=at)
        return True

    async def list_all(self, *, offset: int, limit: int) -> tuple[list[Message], int]:
        everything = sorted(self._by_id.values(), key=lambda m: m.created_at, reverse=True)
        return everything[offset : offset + limit], len(everything)

    async def read_counts(self, message_ids: Iterable[UUID]) -> dict[UUID, int]:
        counts = {mid: 0 for mid in message_ids}
        for mid, _user in self._reads:
            if mid in counts:
                counts[mid] += 1
        return counts
