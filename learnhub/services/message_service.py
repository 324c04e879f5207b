"""Messages: announcements, direct messages and system notices.

A message is visible to a user when it is an ANNOUNCEMENT, or when it is
DIRECT/SYSTEM and addressed to them.  Read state is a separate receipt
row per (message, user); "unread" means visible and without a receipt.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.errors import AccessDeniedError, InvalidInputError, NotFoundError
from learnhub.core.metrics import MESSAGE_READS
from learnhub.models.message import Message
from learnhub.models.page import Page
from learnhub.repos.bundle import Repos

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserMessage:
    message: Message
    is_read: bool
    read_at: datetime.datetime | None


@dataclass(frozen=True, slots=True)
class MessageStats:
    message: Message
    read_count: int


def _check_text(title: str, content: str) -> None:
    if not title.strip():
        raise InvalidInputError("Title is required")
    if not content.strip():
        raise InvalidInputError("Content is required")


async def create_announcement(
    repos: Repos, *, title: str, content: str, created_by_id: UUID | None
) -> Message:
    _check_text(title, content)
    message = Message.new(
        type="ANNOUNCEMENT", title=title, content=content, created_by_id=created_by_id
    )
    await repos.messages.add(message)
    logger.info("Announcement created  message=%s", message.id)
    return message


async def create_direct_message(
    repos: Repos,
    *,
    recipient_id: UUID,
    title: str,
    content: str,
    created_by_id: UUID | None,
) -> Message:
    _check_text(title, content)
    if await repos.users.get_by_id(recipient_id) is None:
        raise NotFoundError("Recipient not found")
    message = Message.new(
        type="DIRECT",
        title=title,
        content=content,
        recipient_id=recipient_id,
        created_by_id=created_by_id,
    )
    await repos.messages.add(message)
    logger.info("Direct message created  message=%s recipient=%s", message.id, recipient_id)
    return message


async def create_system_message(
    repos: Repos, *, recipient_id: UUID, title: str, content: str
) -> Message:
    message = Message.new(
        type="SYSTEM", title=title, content=content, recipient_id=recipient_id
    )
    await repos.messages.add(message)
    return message


async def list_user_messages(
    repos: Repos, user_id: UUID, *, page: int = 1, page_size: int = 20
) -> Page[UserMessage]:
    messages, total = await repos.messages.list_visible(
        user_id, offset=Page.offset_for(page, page_size), limit=page_size
    )
    reads = await repos.messages.reads_for(user_id, (m.id for m in messages))
    items = [
        UserMessage(
            message=m,
            is_read=m.id in reads,
            read_at=reads[m.id].read_at if m.id in reads else None,
        )
        for m in messages
    ]
    return Page(items=items, page=page, page_size=page_size, total=total)


async def get_unread_count(repos: Repos, user_id: UUID) -> int:
    return await repos.messages.count_unread(user_id)


async def mark_as_read(repos: Repos, message_id: UUID, user_id: UUID) -> bool:
    """Record that ``user_id`` read the message. Returns ``already_read``.

    The receipt insert is insert-if-absent on (message, user), so a double
    submit yields one receipt; the second caller gets ``True`` back.
    """
    message = await repos.messages.get(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if not message.is_visible_to(user_id):
        logger.warning(
            "Access denied: user=%s tried to read message=%s", user_id, message_id
        )
        raise AccessDeniedError("Access denied")

    inserted = await repos.messages.add_read(
        message_id, user_id, datetime.datetime.now(datetime.UTC)
    )
    MESSAGE_READS.labels(result="new" if inserted else "already_read").inc()
    return not inserted


async def list_all_messages(
    repos: Repos, *, page: int = 1, page_size: int = 20
) -> Page[MessageStats]:
    messages, total = await repos.messages.list_all(
        offset=Page.offset_for(page, page_size), limit=page_size
    )
    counts = await repos.messages.read_counts(m.id for m in messages)
    items = [MessageStats(message=m, read_count=counts.get(m.id, 0)) for m in messages]
    return Page(items=items, page=page, page_size=page_size, total=total)
