"""update_progress: tier recomputation and one-time tier rewards."""

from __future__ import annotations

import json

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from betthat.achievements.service import (
    get_user_achievements,
    tier_reward_key,
    update_progress,
)
from betthat.achievements.tiers import compute_tier
from betthat.db.models import Achievement, CoinTransaction
from betthat.events import flush_events, pending_events
from betthat.wallet.service import TX_ACHIEVEMENT_REWARD, get_bet_coins, has_transaction


@pytest_asyncio.fixture
async def climb(db_session):
    """An achievement with thresholds [50, 100, 200] and rewards [10, 20, 30]."""
    achievement = Achievement(
        slug="test_climb",
        name="Test Climb",
        description="Climb the tiers",
        category="testing",
        metric="test_metric",
        max_tier=3,
        tier_thresholds=[50, 100, 200],
        tier_rewards=[10, 20, 30],
    )
    db_session.add(achievement)
    await db_session.commit()
    return achievement


async def _reward_total(db, user_id: str) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(CoinTransaction.bet_coins), 0)).where(
            CoinTransaction.user_id == user_id,
            CoinTransaction.type == TX_ACHIEVEMENT_REWARD,
        )
    )
    return int(result.scalar_one())


class TestUpdateProgress:
    @pytest.mark.asyncio
    async def test_jump_from_zero_to_150(self, db_session, make_user, climb):
        user = await make_user("climber")

        row = await update_progress(db_session, user.id, climb.id, 150)

        assert row.progress == 150
        assert row.current_tier == 2
        assert row.completed is False
        assert row.completed_at is None
        assert await get_bet_coins(db_session, user.id) == 30
        assert await has_transaction(db_session, tier_reward_key(climb.id, user.id, 1))
        assert await has_transaction(db_session, tier_reward_key(climb.id, user.id, 2))
        assert not await has_transaction(db_session, tier_reward_key(climb.id, user.id, 3))

        items = {i["slug"]: i for i in await get_user_achievements(db_session, user.id)}
        assert items["test_climb"]["progress_percentage"] == 50
        assert items["test_climb"]["next_threshold"] == 200
        assert items["test_climb"]["next_reward"] == 30

    @pytest.mark.asyncio
    async def test_repeated_update_pays_once(self, db_session, make_user, climb):
        user = await make_user("repeater")

        for _ in range(3):
            await update_progress(db_session, user.id, climb.id, 120)

        assert await get_bet_coins(db_session, user.id) == 30
        assert await _reward_total(db_session, user.id) == 30

    @pytest.mark.asyncio
    async def test_incremental_updates_pay_each_tier(self, db_session, make_user, climb):
        user = await make_user("stepper")

        await update_progress(db_session, user.id, climb.id, 50)
        assert await get_bet_coins(db_session, user.id) == 10
        await update_progress(db_session, user.id, climb.id, 99)
        assert await get_bet_coins(db_session, user.id) == 10
        await update_progress(db_session, user.id, climb.id, 100)
        assert await get_bet_coins(db_session, user.id) == 30

    @pytest.mark.asyncio
    async def test_reaching_max_tier_completes(self, db_session, make_user, climb):
        user = await make_user("finisher")

        row = await update_progress(db_session, user.id, climb.id, 250)

        assert row.current_tier == 3
        assert row.completed is True
        assert row.completed_at is not None
        assert await get_bet_coins(db_session, user.id) == 60

    @pytest.mark.asyncio
    async def test_progress_never_decreases(self, db_session, make_user, climb):
        user = await make_user("steady")

        await update_progress(db_session, user.id, climb.id, 150)
        row = await update_progress(db_session, user.id, climb.id, 10)

        assert row.progress == 150
        assert row.current_tier == 2
        assert await get_bet_coins(db_session, user.id) == 30

    @pytest.mark.asyncio
    async def test_stored_tier_matches_progress(self, db_session, make_user, climb):
        user = await make_user("consistent")

        for value in (10, 75, 150, 199, 420):
            row = await update_progress(db_session, user.id, climb.id, value)
            assert row.current_tier == compute_tier(climb.tier_thresholds, row.progress)

    @pytest.mark.asyncio
    async def test_negative_progress_rejected(self, db_session, make_user, climb):
        user = await make_user("negative")
        with pytest.raises(ValueError):
            await update_progress(db_session, user.id, climb.id, -1)

    @pytest.mark.asyncio
    async def test_unknown_achievement_or_user(self, db_session, make_user, climb):
        user = await make_user("lonely")
        assert await update_progress(db_session, user.id, "missing", 10) is None
        assert await update_progress(db_session, "missing", climb.id, 10) is None


class TestTierEvents:
    @pytest.mark.asyncio
    async def test_queues_one_event_per_paid_tier(self, db_session, make_user, climb):
        user = await make_user("celebrated")
        await update_progress(db_session, user.id, climb.id, 150)
        await update_progress(db_session, user.id, climb.id, 150)

        events = pending_events(db_session)
        assert [channel for channel, _ in events] == ["pubsub:achievement_tier"] * 2
        assert [payload["tier"] for _, payload in events] == [1, 2]
        assert events[1][1]["reward"] == 20

    @pytest.mark.asyncio
    async def test_published_after_commit(self, db_session, make_user, climb):
        published = []

        class FakeRedis:
            async def publish(self, channel, message):
                published.append((channel, json.loads(message)))

        user = await make_user("published")
        await update_progress(db_session, user.id, climb.id, 60)
        assert published == []

        await db_session.commit()
        assert await flush_events(db_session, FakeRedis()) == 1

        assert published[0][1]["achievement"] == "test_climb"
        assert pending_events(db_session) == []

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_break_progress(self, db_session, make_user, climb):
        class BrokenRedis:
            async def publish(self, channel, message):
                raise ConnectionError("redis down")

        user = await make_user("resilient")
        row = await update_progress(db_session, user.id, climb.id, 60)
        await db_session.commit()
        await flush_events(db_session, BrokenRedis())

        assert row.current_tier == 1
        assert await get_bet_coins(db_session, user.id) == 10
