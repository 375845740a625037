"""Achievement progress with one-time Bet-Coin rewards per tier."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.achievements.tiers import (
    compute_tier,
    next_reward,
    next_threshold,
    progress_percentage,
    tier_rewards_due,
)
from betthat.db.models import Achievement, User, UserAchievement
from betthat.events import queue_event
from betthat.redis_client import CHANNEL_ACHIEVEMENT_TIER
from betthat.wallet.service import award_bet_coins

logger = logging.getLogger(__name__)


def tier_reward_key(achievement_id: str, user_id: str, tier: int) -> str:
    """Idempotency key for the reward of one tier."""
    return f"achievement:{achievement_id}:{user_id}:tier:{tier}"


async def get_achievements(db: AsyncSession) -> list[Achievement]:
    """All achievement definitions ordered by category then name."""
    result = await db.execute(select(Achievement).order_by(Achievement.category, Achievement.name))
    return list(result.scalars().all())


async def get_achievement(db: AsyncSession, achievement_id: str) -> Achievement | None:
    result = await db.execute(select(Achievement).where(Achievement.id == achievement_id))
    return result.scalar_one_or_none()


async def get_user_achievement(
    db: AsyncSession,
    user_id: str,
    achievement_id: str,
    for_update: bool = False,
) -> UserAchievement | None:
    query = select(UserAchievement).where(
        UserAchievement.user_id == user_id,
        UserAchievement.achievement_id == achievement_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def update_progress(
    db: AsyncSession,
    user_id: str,
    achievement_id: str,
    new_progress: int,
) -> UserAchievement | None:
    """Record progress and pay every newly crossed tier exactly once.

    Returns the progress row, or None if the user or achievement is unknown.
    Progress never moves backwards: a lower value keeps the stored one.

    1. Lock (or create) the user_achievements row
    2. Recompute tier and completion from progress
    3. Credit tier_rewards for each tier between the stored and new tier,
       idempotent per (achievement, user, tier), and queue a tier event for each
    """
    if new_progress < 0:
        raise ValueError("progress must not be negative")

    achievement = await get_achievement(db, achievement_id)
    if achievement is None:
        logger.warning("Achievement not found: %s", achievement_id)
        return None
    if (await db.execute(select(User.id).where(User.id == user_id))).scalar_one_or_none() is None:
        logger.warning("User not found for achievement progress: %s", user_id)
        return None

    now = datetime.now(timezone.utc)
    row = await get_user_achievement(db, user_id, achievement_id, for_update=True)
    if row is None:
        row = UserAchievement(
            user_id=user_id,
            achievement_id=achievement_id,
            progress=0,
            current_tier=0,
            completed=False,
        )
        db.add(row)

    old_tier = row.current_tier
    progress = max(row.progress, new_progress)
    new_tier = compute_tier(achievement.tier_thresholds, progress)

    row.progress = progress
    row.current_tier = new_tier
    row.completed = new_tier >= achievement.max_tier
    if row.completed and row.completed_at is None:
        row.completed_at = now
    row.updated_at = now
    await db.flush()

    for tier, reward in tier_rewards_due(achievement.tier_rewards, old_tier, new_tier):
        credited = await award_bet_coins(
            db,
            user_id,
            reward,
            f"Achievement: {achievement.name} - Tier {tier}",
            idempotency_key=tier_reward_key(achievement.id, user_id, tier),
        )
        if credited:
            _queue_tier_reached(db, user_id, achievement, tier, reward)

    return row


def _queue_tier_reached(
    db: AsyncSession,
    user_id: str,
    achievement: Achievement,
    tier: int,
    reward: int,
) -> None:
    """Broadcast a tier-reached event for the client's celebration overlay."""
    queue_event(db, CHANNEL_ACHIEVEMENT_TIER, {
        "user_id": user_id,
        "achievement": achievement.slug,
        "name": achievement.name,
        "tier": tier,
        "max_tier": achievement.max_tier,
        "reward": reward,
    })


def describe_progress(achievement: Achievement, row: UserAchievement | None) -> dict[str, Any]:
    """Definition plus the user's progress, next milestone and percentage."""
    progress = row.progress if row else 0
    current_tier = row.current_tier if row else 0
    return {
        "id": achievement.id,
        "slug": achievement.slug,
        "name": achievement.name,
        "description": achievement.description,
        "category": achievement.category,
        "icon": achievement.icon,
        "color": achievement.color,
        "max_tier": achievement.max_tier,
        "tier_thresholds": list(achievement.tier_thresholds),
        "tier_rewards": list(achievement.tier_rewards),
        "user_progress": progress,
        "current_tier": current_tier,
        "completed": row.completed if row else False,
        "completed_at": row.completed_at if row else None,
        "next_threshold": next_threshold(achievement.tier_thresholds, achievement.max_tier, current_tier),
        "next_reward": next_reward(achievement.tier_rewards, achievement.max_tier, current_tier),
        "progress_percentage": progress_percentage(
            achievement.tier_thresholds, achievement.max_tier, progress, current_tier,
        ),
    }


async def get_user_achievements(db: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """Every achievement combined with the user's progress on it."""
    achievements = await get_achievements(db)
    result = await db.execute(select(UserAchievement).where(UserAchievement.user_id == user_id))
    by_achievement = {ua.achievement_id: ua for ua in result.scalars()}
    return [describe_progress(a, by_achievement.get(a.id)) for a in achievements]
