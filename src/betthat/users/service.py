"""User profile business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select

from betthat.db.models import Bet, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_user_profile(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by id."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_users_by_ids(db: AsyncSession, user_ids: list[str]) -> list[User]:
    """Fetch several users at once (unknown ids are skipped)."""
    if not user_ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    return list(result.scalars().all())


async def _ensure_username_free(db: AsyncSession, username: str, exclude_id: str | None = None) -> str:
    normalized = username.lower()
    query = select(User).where(User.username_normalized == normalized)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none() is not None:
        msg = "Username already taken"
        raise ValueError(msg)
    return normalized


async def create_profile(
    db: AsyncSession,
    user_id: str,
    username: str,
    email: str,
    full_name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """
    Create the profile row for a newly signed-up identity.

    Raises:
        ValueError: If the profile already exists, or the username/email is taken.
    """
    if await get_user_profile(db, user_id) is not None:
        msg = "Profile already exists"
        raise ValueError(msg)

    normalized = await _ensure_username_free(db, username)
    existing_email = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    if existing_email.scalar_one_or_none() is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    user = User(
        id=user_id,
        username=username,
        username_normalized=normalized,
        email=email,
        full_name=full_name,
        avatar_url=avatar_url,
    )
    db.add(user)
    await db.flush()
    logger.info("profile_created", user_id=user_id, username=username)
    return user


async def update_user_profile(
    db: AsyncSession,
    user: User,
    username: str | None = None,
    full_name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """
    Update editable profile fields. Balances and win rate are never set here.

    Raises:
        ValueError: If the new username is already taken (case-insensitive).
    """
    if username is not None and username != user.username:
        user.username_normalized = await _ensure_username_free(db, username, exclude_id=user.id)
        user.username = username
    if full_name is not None:
        user.full_name = full_name
    if avatar_url is not None:
        user.avatar_url = avatar_url

    await db.flush()
    return user


def _escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_users(db: AsyncSession, query: str, limit: int = 10, min_length: int = 2) -> list[User]:
    """Case-insensitive substring search on username and full name."""
    query = query.strip()
    if len(query) < min_length:
        return []

    pattern = f"%{_escape_like(query)}%"
    result = await db.execute(
        select(User)
        .where(
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.full_name.ilike(pattern, escape="\\"),
            )
        )
        .order_by(User.username)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_user_stats(db: AsyncSession, user_id: str) -> dict[str, float | int] | None:
    """Total bets the user takes part in, plus the stored win rate."""
    user = await get_user_profile(db, user_id)
    if user is None:
        return None

    total = await db.execute(
        select(func.count())
        .select_from(Bet)
        .where(or_(Bet.creator_id == user_id, Bet.opponent_id == user_id))
    )
    return {"total_bets": int(total.scalar_one()), "win_rate": float(user.win_rate)}
