from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One learner's participation in one project.

    ``user_id`` stays None until the learner registers an account;
    ``group_id`` is set once a group is formed around the enrollment.
    """

    id: UUID
    project_id: UUID
    email: str
    name: str
    school: str
    class_num: int
    created_at: datetime.datetime
    user_id: UUID | None = None
    group_id: UUID | None = None
    last_activity_at: datetime.datetime | None = None
    completed_at: datetime.datetime | None = None
    time_spent_minutes: int | None = None

    @staticmethod
    def new(
        *,
        project_id: UUID,
        email: str,
        name: str,
        school: str,
        class_num: int,
        user_id: UUID | None = None,
        created_at: datetime.datetime | None = None,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            project_id=project_id,
            email=email,
            name=name,
            school=school,
            class_num=class_num,
            created_at=created_at or datetime.datetime.now(datetime.UTC),
            user_id=user_id,
        )


@dataclass(frozen=True, slots=True)
class EnrollmentProgress:
    """Completion flag for a step (checklist_id None) or a checklist item.

    At most one row exists per (enrollment_id, step_id, checklist_id).
    """

    id: UUID
    enrollment_id: UUID
    step_id: UUID
    checklist_id: UUID | None
    completed: bool
    updated_at: datetime.datetime

    @property
    def key(self) -> tuple[UUID, UUID, UUID | None]:
        return (self.enrollment_id, self.step_id, self.checklist_id)

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        step_id: UUID,
        checklist_id: UUID | None,
        completed: bool,
    ) -> EnrollmentProgress:
        return EnrollmentProgress(
            id=uuid4(),
            enrollment_id=enrollment_id,
            step_id=step_id,
            checklist_id=checklist_id,
            completed=completed,
            updated_at=datetime.datetime.now(datetime.UTC),
        )


@dataclass(frozen=True, slots=True)
class Submission:
    id: UUID
    enrollment_id: UUID
    url_or_text: str
    created_at: datetime.datetime

    @staticmethod
    def new(*, enrollment_id: UUID, url_or_text: str) -> Submission:
        return Submission(
            id=uuid4(),
            enrollment_id=enrollment_id,
            url_or_text=url_or_text,
            created_at=datetime.datetime.now(datetime.UTC),
        )
