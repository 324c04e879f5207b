from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel

from learnhub.api.dependencies import RepoBundle
from learnhub.models.activity import ActivityType
from learnhub.services import activity_service

router = APIRouter(tags=["activity"])


class ActivityIn(BaseModel):
    enrollment_id: UUID
    activity_type: ActivityType
    metadata: dict[str, Any] | None = None


class ActivityAck(BaseModel):
    id: UUID
    success: bool = True


@router.post("/activity", response_model=ActivityAck, status_code=status.HTTP_201_CREATED)
async def log_activity(body: ActivityIn, repos: RepoBundle) -> ActivityAck:
    """Client-reported activity (page views, session start/end).

    Unlike the activity recorded alongside progress writes, this one is
    the whole point of the request, so failures surface: 404 for an
    unknown enrollment.
    """
    activity = await activity_service.log_activity(
        repos, body.enrollment_id, body.activity_type, body.metadata
    )
    return ActivityAck(id=activity.id)
