"""Achievement trigger: metrics recounted after domain events pay seeded tiers."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from betthat.achievements.trigger import AchievementTrigger, count_big_bets_placed, current_win_streak
from betthat.bets.service import accept_bet, cancel_bet, create_bet, resolve_bet
from betthat.db.models import Achievement, UserAchievement
from betthat.social.friendship_service import respond_to_friend_request, send_friend_request
from betthat.social.group_service import create_group
from betthat.wallet.service import get_bet_coins


async def _progress(db, user_id: str, slug: str) -> UserAchievement | None:
    result = await db.execute(
        select(UserAchievement)
        .join(Achievement, Achievement.id == UserAchievement.achievement_id)
        .where(UserAchievement.user_id == user_id, Achievement.slug == slug)
    )
    return result.scalar_one_or_none()


async def _play(db, creator, opponent, winner):
    bet = await create_bet(db, creator.id, title="Match", amount=Decimal("1"), opponent_id=opponent.id)
    await accept_bet(db, bet.id, opponent.id)
    await resolve_bet(db, bet.id, winner.id)
    return bet


class TestAchievementTrigger:
    @pytest.mark.asyncio
    async def test_accepted_big_bet_pays_both_players(self, db_session, make_user):
        creator = await make_user("creator", balance="100")
        opponent = await make_user("opponent", balance="100")
        bet = await create_bet(db_session, creator.id, title="Big one", amount=Decimal("100"), opponent_id=opponent.id)
        await accept_bet(db_session, bet.id, opponent.id)

        await AchievementTrigger(db_session).on_event("bet_accepted", [creator.id, opponent.id])

        for player in (creator, opponent):
            row = await _progress(db_session, player.id, "big_spender")
            assert row.progress == 1
            assert row.current_tier == 1
            assert await get_bet_coins(db_session, player.id) == 10

    @pytest.mark.asyncio
    async def test_created_then_cancelled_bet_pays_nothing(self, db_session, make_user):
        creator = await make_user("creator")
        opponent = await make_user("opponent")
        bet = await create_bet(db_session, creator.id, title="Big talk", amount=Decimal("500"), opponent_id=opponent.id)
        await cancel_bet(db_session, bet.id, creator.id)

        await AchievementTrigger(db_session).on_event("bet_accepted", [creator.id, opponent.id])

        assert (await _progress(db_session, creator.id, "big_spender")).progress == 0
        assert await get_bet_coins(db_session, creator.id) == 0

    @pytest.mark.asyncio
    async def test_small_and_coin_bets_do_not_count(self, db_session, make_user):
        creator = await make_user("creator", bet_coins=200, balance="100")
        opponent = await make_user("opponent", bet_coins=200, balance="100")
        small = await create_bet(db_session, creator.id, title="Small", amount=Decimal("99.99"), opponent_id=opponent.id)
        coins = await create_bet(
            db_session, creator.id, title="Coins", amount=Decimal("150"), opponent_id=opponent.id,
            is_coin_denominated=True,
        )
        await accept_bet(db_session, small.id, opponent.id)
        await accept_bet(db_session, coins.id, opponent.id)

        assert await count_big_bets_placed(db_session, creator.id) == 0

    @pytest.mark.asyncio
    async def test_repeated_event_does_not_pay_twice(self, db_session, make_user):
        owner = await make_user("owner")
        await create_group(db_session, "Crew", None, owner.id)

        trigger = AchievementTrigger(db_session)
        await trigger.on_event("group_joined", [owner.id])
        await trigger.on_event("group_joined", [owner.id])

        assert await get_bet_coins(db_session, owner.id) == 10

    @pytest.mark.asyncio
    async def test_win_streak_and_bets_won(self, db_session, make_user):
        winner = await make_user("winner", balance="50")
        loser = await make_user("loser", balance="50")
        for _ in range(3):
            await _play(db_session, loser, winner, winner)

        assert await current_win_streak(db_session, winner.id) == 3
        assert await current_win_streak(db_session, loser.id) == 0

        await AchievementTrigger(db_session).on_event("bet_resolved", [winner.id, loser.id])

        assert (await _progress(db_session, winner.id, "winning_streak")).current_tier == 1
        assert (await _progress(db_session, winner.id, "sharpshooter")).progress == 3
        # sharpshooter tier 1 (10) + winning streak tier 1 (25)
        assert await get_bet_coins(db_session, winner.id) == 35

    @pytest.mark.asyncio
    async def test_streak_resets_after_loss(self, db_session, make_user):
        a = await make_user("alpha", balance="50")
        b = await make_user("bravo", balance="50")
        await _play(db_session, a, b, a)
        await _play(db_session, a, b, b)
        await _play(db_session, a, b, a)

        assert await current_win_streak(db_session, a.id) == 1

    @pytest.mark.asyncio
    async def test_friend_accepted_counts_for_both(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        request = await send_friend_request(db_session, alice.id, bob.id)
        await respond_to_friend_request(db_session, request.id, bob.id, "accepted")

        await AchievementTrigger(db_session).on_event("friend_accepted", [alice.id, bob.id])

        assert (await _progress(db_session, alice.id, "good_company")).current_tier == 1
        assert (await _progress(db_session, bob.id, "good_company")).current_tier == 1

    @pytest.mark.asyncio
    async def test_unknown_event(self, db_session):
        with pytest.raises(ValueError, match="Unknown achievement event"):
            await AchievementTrigger(db_session).on_event("bet_exploded", ["x"])
