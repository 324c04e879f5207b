from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

ActivityType = Literal[
    "ENROLLMENT_CREATED",
    "PAGE_VIEW",
    "STEP_COMPLETED",
    "CHECKLIST_COMPLETED",
    "SUBMISSION_CREATED",
    "SESSION_START",
    "SESSION_END",
]

ACTIVITY_TYPES: tuple[str, ...] = (
    "ENROLLMENT_CREATED",
    "PAGE_VIEW",
    "STEP_COMPLETED",
    "CHECKLIST_COMPLETED",
    "SUBMISSION_CREATED",
    "SESSION_START",
    "SESSION_END",
)


@dataclass(frozen=True, slots=True)
class UserActivity:
    """Append-only record of something a learner did within an enrollment."""

    id: UUID
    enrollment_id: UUID
    activity_type: str
    created_at: datetime.datetime
    metadata_json: str | None = None

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        activity_type: str,
        metadata_json: str | None = None,
        created_at: datetime.datetime | None = None,
    ) -> UserActivity:
        return UserActivity(
            id=uuid4(),
            enrollment_id=enrollment_id,
            activity_type=activity_type,
            created_at=created_at or datetime.datetime.now(datetime.UTC),
            metadata_json=metadata_json,
        )
