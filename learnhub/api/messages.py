from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from learnhub.api.dependencies import CurrentUser, RepoBundle
from learnhub.api.ratelimit import require_rate_limit
from learnhub.services import message_service
from learnhub.services.rate_limiter import MESSAGE_READ_LIMIT

router = APIRouter(prefix="/me/messages", tags=["messages"])


class InboxMessageOut(BaseModel):
    id: UUID
    type: str
    title: str
    content: str
    created_at: datetime.datetime
    is_read: bool
    read_at: datetime.datetime | None


class InboxPageOut(BaseModel):
    items: list[InboxMessageOut]
    page: int
    page_size: int
    total: int
    total_pages: int


class UnreadCountOut(BaseModel):
    unread_count: int


class ReadOut(BaseModel):
    message_id: UUID
    already_read: bool


@router.get("", response_model=InboxPageOut)
async def list_messages(
    principal: CurrentUser,
    repos: RepoBundle,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> InboxPageOut:
    result = await message_service.list_user_messages(
        repos, principal.user_id, page=page, page_size=page_size
    )
    return InboxPageOut(
        items=[
            InboxMessageOut(
                id=m.message.id,
                type=m.message.type,
                title=m.message.title,
                content=m.message.content,
                created_at=m.message.created_at,
                is_read=m.is_read,
                read_at=m.read_at,
            )
            for m in result.items
        ],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/unread-count", response_model=UnreadCountOut)
async def unread_count(principal: CurrentUser, repos: RepoBundle) -> UnreadCountOut:
    return UnreadCountOut(
        unread_count=await message_service.get_unread_count(repos, principal.user_id)
    )


@router.post(
    "/{message_id}/read",
    response_model=ReadOut,
    dependencies=[Depends(require_rate_limit("message-read", MESSAGE_READ_LIMIT))],
)
async def mark_read(message_id: UUID, principal: CurrentUser, repos: RepoBundle) -> ReadOut:
    already = await message_service.mark_as_read(repos, message_id, principal.user_id)
    return ReadOut(message_id=message_id, already_read=already)
