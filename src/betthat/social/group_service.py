"""Group business logic.

Rules:
- The creator becomes the first member
- Anyone holding the invite code may join, once
- Only members can read or post group messages
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.db.models import Group, GroupMember, GroupMessage, User
from betthat.social.invite_codes import (
    generate_unique_invite_code,
    is_valid_invite_code,
    normalize_invite_code,
)

logger = logging.getLogger(__name__)


async def get_group(db: AsyncSession, group_id: str) -> Group | None:
    result = await db.execute(select(Group).where(Group.id == group_id))
    return result.scalar_one_or_none()


async def is_member(db: AsyncSession, group_id: str, user_id: str) -> bool:
    result = await db.execute(
        select(GroupMember.id).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def create_group(
    db: AsyncSession,
    name: str,
    description: str | None,
    created_by: str,
) -> Group:
    """Create a group with a fresh invite code and add the creator as a member."""
    invite_code = await generate_unique_invite_code(db)
    group = Group(
        name=name,
        description=description,
        invite_code=invite_code,
        created_by=created_by,
    )
    db.add(group)
    await db.flush()

    db.add(GroupMember(group_id=group.id, user_id=created_by))
    await db.flush()

    logger.info("Group created: %s (id=%s, owner=%s)", name, group.id, created_by)
    return group


async def get_user_groups(db: AsyncSession, user_id: str) -> list[Group]:
    """Groups the user belongs to, most recently joined first."""
    result = await db.execute(
        select(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == user_id)
        .order_by(GroupMember.joined_at.desc())
    )
    return list(result.scalars().all())


async def get_group_members(db: AsyncSession, group_id: str) -> list[tuple[GroupMember, User]]:
    result = await db.execute(
        select(GroupMember, User)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at.asc())
    )
    return [(row.GroupMember, row.User) for row in result]


async def get_group_details(
    db: AsyncSession,
    group_id: str,
) -> tuple[Group, list[tuple[GroupMember, User]]] | None:
    """Group with its members, or None if the group does not exist."""
    group = await get_group(db, group_id)
    if group is None:
        return None
    return group, await get_group_members(db, group_id)


async def join_group_by_code(db: AsyncSession, user_id: str, invite_code: str) -> Group:
    """Join a group using its invite code.

    Raises:
        ValueError: Unknown code, or the user is already a member.
    """
    code = normalize_invite_code(invite_code)
    if not is_valid_invite_code(code):
        raise ValueError("Invalid invite code")
    result = await db.execute(select(Group).where(Group.invite_code == code))
    group = result.scalar_one_or_none()
    if group is None:
        raise ValueError("Invalid invite code")

    if await is_member(db, group.id, user_id):
        raise ValueError("You are already a member of this group")

    db.add(GroupMember(group_id=group.id, user_id=user_id))
    await db.flush()
    logger.info("User %s joined group %s via invite code", user_id, group.id)
    return group


async def leave_group(db: AsyncSession, user_id: str, group_id: str) -> bool:
    """Remove the user's membership. Returns False if they were not a member."""
    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        return False
    await db.delete(membership)
    await db.flush()
    logger.info("User %s left group %s", user_id, group_id)
    return True


async def get_group_messages(db: AsyncSession, group_id: str) -> list[tuple[GroupMessage, User]]:
    """Messages oldest first, each with its author."""
    result = await db.execute(
        select(GroupMessage, User)
        .join(User, User.id == GroupMessage.user_id)
        .where(GroupMessage.group_id == group_id)
        .order_by(GroupMessage.created_at.asc())
    )
    return [(row.GroupMessage, row.User) for row in result]


async def send_group_message(db: AsyncSession, group_id: str, user_id: str, text: str) -> GroupMessage:
    """Post a message. Raises PermissionError for non-members."""
    if not await is_member(db, group_id, user_id):
        raise PermissionError("Only group members can post messages")
    message = GroupMessage(group_id=group_id, user_id=user_id, text=text)
    db.add(message)
    await db.flush()
    return message
