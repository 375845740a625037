"""Achievement trigger: recomputes tracked metrics after domain events.

Each achievement names the metric it follows. After a mutation the router
calls ``on_event`` with the affected users; the metric is recounted from the
database and fed into ``update_progress``, which pays any newly reached tier.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.achievements.service import update_progress
from betthat.db.models import Achievement, Bet, Friendship, GroupMember

logger = logging.getLogger(__name__)

BIG_BET_AMOUNT = Decimal("100")

EVENT_METRICS: dict[str, tuple[str, ...]] = {
    "bet_accepted": ("big_bets_placed",),
    "bet_resolved": ("bets_won", "win_streak"),
    "bet_verified": ("bets_verified",),
    "group_joined": ("groups_joined",),
    "friend_accepted": ("friends_added",),
}


async def _count(db: AsyncSession, query) -> int:  # noqa: ANN001
    return int((await db.execute(query)).scalar_one())


async def count_big_bets_placed(db: AsyncSession, user_id: str) -> int:
    """Cash bets of at least BIG_BET_AMOUNT that the user has staked on."""
    return await _count(
        db,
        select(func.count()).select_from(Bet).where(
            or_(Bet.creator_id == user_id, Bet.opponent_id == user_id),
            Bet.status.in_(("active", "completed")),
            Bet.is_coin_denominated.is_(False),
            Bet.amount >= BIG_BET_AMOUNT,
        ),
    )


async def count_bets_won(db: AsyncSession, user_id: str) -> int:
    return await _count(db, select(func.count()).select_from(Bet).where(Bet.winner_id == user_id))


async def count_bets_verified(db: AsyncSession, user_id: str) -> int:
    return await _count(
        db,
        select(func.count()).select_from(Bet).where(
            Bet.verifier_id == user_id,
            Bet.status == "completed",
        ),
    )


async def count_groups_joined(db: AsyncSession, user_id: str) -> int:
    return await _count(db, select(func.count()).select_from(GroupMember).where(GroupMember.user_id == user_id))


async def count_friends(db: AsyncSession, user_id: str) -> int:
    return await _count(
        db,
        select(func.count()).select_from(Friendship).where(
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
            Friendship.status == "accepted",
        ),
    )


async def current_win_streak(db: AsyncSession, user_id: str) -> int:
    """Consecutive wins counted back from the most recently resolved bet."""
    result = await db.execute(
        select(Bet.winner_id)
        .where(
            or_(Bet.creator_id == user_id, Bet.opponent_id == user_id),
            Bet.status == "completed",
        )
        .order_by(Bet.resolved_at.desc())
    )
    streak = 0
    for winner_id in result.scalars():
        if winner_id != user_id:
            break
        streak += 1
    return streak


METRIC_COUNTERS: dict[str, Callable[[AsyncSession, str], Awaitable[int]]] = {
    "big_bets_placed": count_big_bets_placed,
    "bets_won": count_bets_won,
    "win_streak": current_win_streak,
    "bets_verified": count_bets_verified,
    "groups_joined": count_groups_joined,
    "friends_added": count_friends,
}


class AchievementTrigger:
    """Evaluates achievement progress for domain events."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._by_metric: dict[str, list[Achievement]] | None = None

    async def _load_achievements(self) -> dict[str, list[Achievement]]:
        if self._by_metric is None:
            result = await self.db.execute(select(Achievement))
            by_metric: dict[str, list[Achievement]] = {}
            for achievement in result.scalars():
                by_metric.setdefault(achievement.metric, []).append(achievement)
            self._by_metric = by_metric
        return self._by_metric

    async def on_event(self, event: str, user_ids: Iterable[str | None]) -> None:
        """Update every achievement whose metric the event can change. Does not commit."""
        metrics = EVENT_METRICS.get(event)
        if metrics is None:
            raise ValueError(f"Unknown achievement event: {event}")

        by_metric = await self._load_achievements()
        for user_id in {u for u in user_ids if u}:
            for metric in metrics:
                achievements = by_metric.get(metric, [])
                if not achievements:
                    continue
                value = await METRIC_COUNTERS[metric](self.db, user_id)
                for achievement in achievements:
                    await update_progress(self.db, user_id, achievement.id, value)
                logger.debug("Metric %s=%d for user %s after %s", metric, value, user_id, event)
