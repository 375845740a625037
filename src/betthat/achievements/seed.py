"""Achievement seed data: tiered definitions keyed by slug."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.achievements.tiers import validate_tiers
from betthat.db.models import Achievement

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "slug": "big_spender",
        "name": "Big Spender",
        "description": "Place bets of $100 or more",
        "category": "betting",
        "metric": "big_bets_placed",
        "icon": "dollar",
        "color": "yellow",
        "max_tier": 3,
        "tier_thresholds": [1, 10, 50],
        "tier_rewards": [10, 25, 50],
    },
    {
        "slug": "winning_streak",
        "name": "Winning Streak",
        "description": "Win bets in a row",
        "category": "betting",
        "metric": "win_streak",
        "icon": "zap",
        "color": "purple",
        "max_tier": 3,
        "tier_thresholds": [3, 5, 10],
        "tier_rewards": [25, 50, 100],
    },
    {
        "slug": "sharpshooter",
        "name": "Sharpshooter",
        "description": "Win bets",
        "category": "betting",
        "metric": "bets_won",
        "icon": "target",
        "color": "green",
        "max_tier": 4,
        "tier_thresholds": [1, 10, 25, 50],
        "tier_rewards": [10, 50, 100, 250],
    },
    {
        "slug": "verified_pro",
        "name": "Verified Pro",
        "description": "Verify bet outcomes as a third party",
        "category": "community",
        "metric": "bets_verified",
        "icon": "trophy",
        "color": "blue",
        "max_tier": 3,
        "tier_thresholds": [1, 10, 25],
        "tier_rewards": [15, 75, 150],
    },
    {
        "slug": "social_butterfly",
        "name": "Social Butterfly",
        "description": "Join betting groups",
        "category": "social",
        "metric": "groups_joined",
        "icon": "users",
        "color": "pink",
        "max_tier": 3,
        "tier_thresholds": [1, 5, 10],
        "tier_rewards": [10, 50, 100],
    },
    {
        "slug": "good_company",
        "name": "Good Company",
        "description": "Make friends to bet against",
        "category": "social",
        "metric": "friends_added",
        "icon": "heart",
        "color": "red",
        "max_tier": 3,
        "tier_thresholds": [1, 5, 20],
        "tier_rewards": [10, 25, 75],
    },
]

_UPDATABLE = ("name", "description", "category", "metric", "icon", "color", "max_tier", "tier_thresholds", "tier_rewards")


async def seed_achievements(db: AsyncSession) -> int:
    """Upsert all achievement definitions by slug. Returns number seeded."""
    result = await db.execute(select(Achievement))
    existing = {a.slug: a for a in result.scalars()}

    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        validate_tiers(data["max_tier"], data["tier_thresholds"], data["tier_rewards"])
        row = existing.get(data["slug"])
        if row is None:
            db.add(Achievement(**data))
        else:
            for field in _UPDATABLE:
                setattr(row, field, data[field])
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
