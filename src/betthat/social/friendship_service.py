"""Friend request state machine.

States: none -> pending -> accepted. Rejecting a request deletes it, as does
removing a friend, so the pair returns to "none". Each unordered pair has at
most one row (unique on the sorted pair); the requester/recipient direction
only matters while the request is pending.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.db.models import Friendship, User
from betthat.users.service import get_user_profile, get_users_by_ids

logger = logging.getLogger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"


def _pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


async def get_friendship_between(db: AsyncSession, user_id: str, other_id: str) -> Friendship | None:
    """The edge between two users in either direction, if any."""
    low, high = _pair(user_id, other_id)
    result = await db.execute(
        select(Friendship).where(Friendship.pair_low == low, Friendship.pair_high == high)
    )
    return result.scalar_one_or_none()


async def are_friends(db: AsyncSession, user_id: str, other_id: str) -> bool:
    friendship = await get_friendship_between(db, user_id, other_id)
    return friendship is not None and friendship.status == ACCEPTED


async def send_friend_request(db: AsyncSession, user_id: str, friend_id: str) -> Friendship:
    """Create a pending request from user_id to friend_id.

    Raises:
        ValueError: Self-request, unknown recipient, or an existing pending or
            accepted edge in either direction.
    """
    if user_id == friend_id:
        raise ValueError("Cannot send a friend request to yourself")
    if await get_user_profile(db, friend_id) is None:
        raise ValueError("User not found")

    existing = await get_friendship_between(db, user_id, friend_id)
    if existing is not None:
        if existing.status == ACCEPTED:
            raise ValueError("Already friends")
        raise ValueError("Friendship already exists")

    low, high = _pair(user_id, friend_id)
    friendship = Friendship(
        user_id=user_id,
        friend_id=friend_id,
        status=PENDING,
        pair_low=low,
        pair_high=high,
    )
    db.add(friendship)
    try:
        await db.flush()
    except IntegrityError as e:
        # concurrent request for the same pair won the insert
        raise ValueError("Friendship already exists") from e
    logger.info("Friend request %s: %s -> %s", friendship.id, user_id, friend_id)
    return friendship


async def respond_to_friend_request(
    db: AsyncSession,
    request_id: str,
    responder_id: str,
    status: str,
) -> Friendship | None:
    """Accept or reject a pending request. Only the recipient may respond.

    Returns the accepted friendship, or None when the request was rejected
    (rejected requests are deleted).

    Raises:
        LookupError: No pending request with that id.
        PermissionError: The responder is not the recipient.
        ValueError: Status is neither accepted nor rejected.
    """
    if status not in (ACCEPTED, REJECTED):
        raise ValueError("status must be 'accepted' or 'rejected'")

    result = await db.execute(
        select(Friendship).where(Friendship.id == request_id).with_for_update()
    )
    friendship = result.scalar_one_or_none()
    if friendship is None or friendship.status != PENDING:
        raise LookupError("Friend request not found")
    if friendship.friend_id != responder_id:
        raise PermissionError("Only the recipient can respond to a friend request")

    if status == REJECTED:
        await db.delete(friendship)
        await db.flush()
        logger.info("Friend request %s rejected", request_id)
        return None

    friendship.status = ACCEPTED
    friendship.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Friend request %s accepted", request_id)
    return friendship


async def remove_friend(db: AsyncSession, user_id: str, friend_id: str) -> bool:
    """Delete the edge between two users in either direction. Returns True if one existed."""
    friendship = await get_friendship_between(db, user_id, friend_id)
    if friendship is None:
        return False
    await db.delete(friendship)
    await db.flush()
    return True


async def get_friend_ids(db: AsyncSession, user_id: str) -> list[str]:
    """Ids of users with an accepted friendship with user_id."""
    result = await db.execute(
        select(Friendship.user_id, Friendship.friend_id).where(
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
            Friendship.status == ACCEPTED,
        )
    )
    return [friend if requester == user_id else requester for requester, friend in result.all()]


async def get_friends(db: AsyncSession, user_id: str) -> list[User]:
    return await get_users_by_ids(db, await get_friend_ids(db, user_id))


async def get_pending_requests(db: AsyncSession, user_id: str) -> list[tuple[Friendship, User]]:
    """Pending requests received by user_id, each with the sender's profile."""
    result = await db.execute(
        select(Friendship, User)
        .join(User, User.id == Friendship.user_id)
        .where(Friendship.friend_id == user_id, Friendship.status == PENDING)
        .order_by(Friendship.created_at.asc())
    )
    return [(row.Friendship, row.User) for row in result]


async def get_friend_requests(db: AsyncSession, user_id: str) -> list[User]:
    """Profiles of users who sent user_id a pending request."""
    return [sender for _, sender in await get_pending_requests(db, user_id)]
