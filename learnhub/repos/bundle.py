"""One handle on every repository for a single unit of work.

Services take a ``Repos`` instead of a list of repo arguments.  The two
factories build either the in-memory set (dev, tests) or the PostgreSQL
set bound to one AsyncSession, so everything a service writes through
it commits or rolls back together.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from learnhub.repos.group_repo import GroupRepo, InMemoryGroupRepo
from learnhub.repos.message_repo import InMemoryMessageRepo, MessageRepo
from learnhub.repos.pg_activity_repo import PgActivityRepo
from learnhub.repos.pg_enrollment_repo import PgEnrollmentRepo
from learnhub.repos.pg_group_repo import PgGroupRepo
from learnhub.repos.pg_message_repo import PgMessageRepo
from learnhub.repos.pg_progress_repo import PgProgressRepo
from learnhub.repos.pg_project_repo import PgProjectRepo
from learnhub.repos.pg_submission_repo import PgSubmissionRepo
from learnhub.repos.pg_user_repo import PgUserRepo
from learnhub.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from learnhub.repos.project_repo import InMemoryProjectRepo, ProjectRepo
from learnhub.repos.submission_repo import InMemorySubmissionRepo, SubmissionRepo
from learnhub.repos.user_repo import InMemoryUserRepo, UserRepo


@dataclass(slots=True)
class Repos:
    projects: ProjectRepo
    enrollments: EnrollmentRepo
    progress: ProgressRepo
    submissions: SubmissionRepo
    groups: GroupRepo
    users: UserRepo
    activities: ActivityRepo
    messages: MessageRepo
    session: AsyncSession | None = None

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        """Scope a best-effort write.

        On PostgreSQL a failed statement poisons the whole transaction, so
        the write runs inside SAVEPOINT and a failure rolls back only that.
        The in-memory repos have nothing to roll back.
        """
        if self.session is None:
            yield
            return
        async with self.session.begin_nested():
            yield


def in_memory_repos() -> Repos:
    return Repos(
        projects=InMemoryProjectRepo(),
        enrollments=InMemoryEnrollmentRepo(),
        progress=InMemoryProgressRepo(),
        submissions=InMemorySubmissionRepo(),
        groups=InMemoryGroupRepo(),
        users=InMemoryUserRepo(),
        activities=InMemoryActivityRepo(),
        messages=InMemoryMessageRepo(),
    )


def pg_repos(session: AsyncSession) -> Repos:
    return Repos(
        projects=PgProjectRepo(session),
        enrollments=PgEnrollmentRepo(session),
        progress=PgProgressRepo(session),
        submissions=PgSubmissionRepo(session),
        groups=PgGroupRepo(session),
        users=PgUserRepo(session),
        activities=PgActivityRepo(session),
        messages=PgMessageRepo(session),
        session=session,
    )
