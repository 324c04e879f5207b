"""Learner accounts: register from an enrollment, log in, load the profile.

An account is always created off an existing enrollment.  The
enrollment's email becomes the account email and every enrollment with
that email is linked to the new user, so a learner who enrolled several
times before registering sees them all (until the next profile load
reconciles them down to the newest one).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.errors import (
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from learnhub.models.enrollment import Enrollment
from learnhub.models.group import Group
from learnhub.models.project import Project
from learnhub.models.user import User
from learnhub.repos.bundle import Repos
from learnhub.services import progress_service
from learnhub.services.auth_service import (
    MIN_PASSWORD_LENGTH,
    authenticate_user,
    hash_password,
)
from learnhub.services.progress_service import ProgressSummary

logger = logging.getLogger(__name__)

# E.164: leading +, country code, up to 15 digits total
_PHONE_RE = re.compile(r"^\+[1-9]\d{6,14}$")


@dataclass(frozen=True, slots=True)
class ProfileEnrollment:
    enrollment: Enrollment
    project: Project | None
    group: Group | None
    progress: ProgressSummary


@dataclass(frozen=True, slots=True)
class Profile:
    user: User
    enrollments: list[ProfileEnrollment]


def normalize_phone(phone_number: str) -> str:
    phone = re.sub(r"[\s\-()]", "", phone_number or "")
    if not _PHONE_RE.match(phone):
        raise InvalidInputError("Phone number must be in E.164 format, e.g. +14155550100")
    return phone


async def register(
    repos: Repos,
    *,
    enrollment_id: UUID,
    phone_number: str,
    password: str,
    name: str | None = None,
    school: str | None = None,
    class_num: int | None = None,
) -> User:
    phone = normalize_phone(phone_number)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    enrollment = await repos.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")

    if await repos.users.get_by_phone(phone) is not None:
        raise ConflictError(
            "User account already exists for this phone number. Please login instead."
        )

    user = User.new(
        phone_number=phone,
        password_hash=hash_password(password),
        email=enrollment.email,
        name=(name or "").strip() or enrollment.name,
        school=(school or "").strip() or enrollment.school,
        class_num=class_num if class_num is not None else enrollment.class_num,
        roles=("user",),
    )
    try:
        await repos.users.add(user)
    except ValueError as exc:
        # Lost a race with a concurrent registration for the same phone.
        raise ConflictError(
            "User account already exists for this phone number. Please login instead."
        ) from exc

    linked = await repos.enrollments.link_user_by_email(enrollment.email, user.id)
    logger.info(
        "User registered  user=%s linked_enrollments=%d",
        user.id,
        linked,
        extra={"user_id": str(user.id)},
    )
    return user


async def login(repos: Repos, phone_number: str, password: str) -> User:
    try:
        phone = normalize_phone(phone_number)
    except InvalidInputError:
        phone = phone_number
    user = await authenticate_user(repos.users, phone, password)
    if user is None:
        raise AuthenticationError("Invalid phone number or password")
    return user


async def get_profile(repos: Repos, user_id: UUID) -> Profile:
    """Load the user with their enrollments, after reconciling duplicates."""
    user = await repos.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")

    await progress_service.reconcile_duplicate_enrollments(repos, user_id)

    entries = []
    for enrollment in await repos.enrollments.list_for_user(user_id):
        group = None
        if enrollment.group_id is not None:
            group = await repos.groups.get(enrollment.group_id)
        entries.append(
            ProfileEnrollment(
                enrollment=enrollment,
                project=await repos.projects.get(enrollment.project_id),
                group=group,
                progress=await progress_service.summarize_progress(repos, enrollment),
            )
        )
    return Profile(user=user, enrollments=entries)
