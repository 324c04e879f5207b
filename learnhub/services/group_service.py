from __future__ import annotations

import datetime
import logging
from dataclasses import replace
from uuid import UUID

from learnhub.core.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from learnhub.models.group import Group, GroupMember
from learnhub.repos.bundle import Repos

logger = logging.getLogger(__name__)

_ALREADY_FULL = "This group already has a second member"


async def create_group(
    repos: Repos, team_leader_id: UUID, second_member: GroupMember | None = None
) -> Group:
    group = Group.new(team_leader_id=team_leader_id, second_member=second_member)
    await repos.groups.add(group)
    logger.info("Group created  group=%s leader=%s", group.id, team_leader_id)
    return group


async def get_group(repos: Repos, group_id: UUID) -> Group:
    group = await repos.groups.get(group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


async def add_second_member(
    repos: Repos, group_id: UUID, member: GroupMember
) -> Group:
    """Fill the group's single second-member slot.

    Raises ConflictError when the slot is taken; the existing member's
    details are left untouched.
    """
    if not member.name.strip():
        raise InvalidInputError("Second member name is required")
    member = replace(member, name=member.name.strip())

    group = await get_group(repos, group_id)
    if group.has_second_member:
        raise ConflictError(_ALREADY_FULL)

    filled = await repos.groups.fill_second_member(
        group_id, member, datetime.datetime.now(datetime.UTC)
    )
    if not filled:
        # Someone else filled the slot between our read and the update.
        raise ConflictError(_ALREADY_FULL)

    logger.info("Second member added  group=%s", group_id)
    return await get_group(repos, group_id)


async def has_second_member(repos: Repos, group_id: UUID) -> bool:
    group = await repos.groups.get(group_id)
    return group is not None and group.has_second_member


async def add_member_to_enrollment(
    repos: Repos, enrollment_id: UUID, user_id: UUID, member: GroupMember
) -> Group:
    """Attach a second member to the caller's enrollment.

    The first call creates the group (caller as team leader) and links it
    to the enrollment; later calls go through add_second_member.
    """
    enrollment = await repos.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    if enrollment.user_id != user_id:
        raise AccessDeniedError("Access denied")
    if not member.name.strip():
        raise InvalidInputError("Second member name is required")

    if enrollment.group_id is None:
        group = await create_group(repos, user_id, member)
        await repos.enrollments.set_group(enrollment_id, group.id)
        return group

    return await add_second_member(repos, enrollment.group_id, member)
