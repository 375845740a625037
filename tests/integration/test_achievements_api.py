"""Integration: achievement catalogue and per-user progress."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from betthat.achievements.seed import ACHIEVEMENT_SEED_DATA


class TestAchievementsApi:
    @pytest.mark.asyncio
    async def test_catalogue_is_public(self, client: AsyncClient):
        response = await client.get("/api/achievements")
        assert response.status_code == 200
        slugs = {a["slug"] for a in response.json()["achievements"]}
        assert slugs == {data["slug"] for data in ACHIEVEMENT_SEED_DATA}

    @pytest.mark.asyncio
    async def test_my_progress_defaults(self, client: AsyncClient, make_user, auth):
        user = await make_user("fresh")
        response = await client.get("/api/achievements/me", headers=auth(user))
        assert response.status_code == 200
        data = response.json()
        assert data["bet_coins"] == 0
        by_slug = {a["slug"]: a for a in data["achievements"]}
        big_spender = by_slug["big_spender"]
        assert big_spender["user_progress"] == 0
        assert big_spender["current_tier"] == 0
        assert big_spender["next_threshold"] == 1
        assert big_spender["next_reward"] == 10
        assert big_spender["progress_percentage"] == 0
        assert big_spender["completed"] is False

    @pytest.mark.asyncio
    async def test_progress_after_big_bet_accepted(self, client: AsyncClient, make_user, auth):
        creator = await make_user("creator", balance="100")
        opponent = await make_user("opponent", balance="100")
        response = await client.post(
            "/api/bets", json={"title": "First bet", "amount": "100", "opponent_id": opponent.id}, headers=auth(creator),
        )
        bet_id = response.json()["id"]

        data = (await client.get("/api/achievements/me", headers=auth(creator))).json()
        assert next(a for a in data["achievements"] if a["slug"] == "big_spender")["user_progress"] == 0

        await client.post(f"/api/bets/{bet_id}/accept", headers=auth(opponent))

        data = (await client.get("/api/achievements/me", headers=auth(creator))).json()
        big_spender = next(a for a in data["achievements"] if a["slug"] == "big_spender")
        assert big_spender["user_progress"] == 1
        assert big_spender["current_tier"] == 1
        assert big_spender["next_threshold"] == 10
        assert big_spender["progress_percentage"] == 0
        assert data["bet_coins"] == 10

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        assert (await client.get("/api/achievements/me")).status_code == 401


class TestSeeding:
    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, db_session):
        from sqlalchemy import func, select

        from betthat.achievements.seed import seed_achievements
        from betthat.db.models import Achievement

        assert await seed_achievements(db_session) == len(ACHIEVEMENT_SEED_DATA)
        count = await db_session.execute(select(func.count()).select_from(Achievement))
        assert count.scalar_one() == len(ACHIEVEMENT_SEED_DATA)
