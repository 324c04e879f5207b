from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

MessageType = Literal["ANNOUNCEMENT", "DIRECT", "SYSTEM"]


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    type: str  # ANNOUNCEMENT|DIRECT|SYSTEM
    title: str
    content: str
    created_at: datetime.datetime
    recipient_id: UUID | None = None  # None for announcements
    created_by_id: UUID | None = None  # None for system messages

    def is_visible_to(self, user_id: UUID) -> bool:
        if self.type == "ANNOUNCEMENT":
            return True
        return self.recipient_id == user_id

    @staticmethod
    def new(
        *,
        type: str,
        title: str,
        content: str,
        recipient_id: UUID | None = None,
        created_by_id: UUID | None = None,
        created_at: datetime.datetime | None = None,
    ) -> Message:
        return Message(
            id=uuid4(),
            type=type,
            title=title,
            content=content,
            created_at=created_at or datetime.datetime.now(datetime.UTC),
            recipient_id=recipient_id,
            created_by_id=created_by_id,
        )


@dataclass(frozen=True, slots=True)
class MessageRead:
    """Receipt: ``user_id`` has read ``message_id``. One per pair."""

    message_id: UUID
    user_id: UUID
    read_at: datetime.datetime
