"""Redis pub/sub events: queued during a request, published after commit."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from betthat.bets.service import accept_bet, create_bet, resolve_bet
from betthat.events import flush_events, pending_events
from betthat.redis_client import CHANNEL_BET_RESOLVED, publish_event


class RecordingRedis:
    def __init__(self):
        self.messages: list[tuple[str, dict]] = []

    async def publish(self, channel, message):
        self.messages.append((channel, json.loads(message)))


class TestPublishEvent:
    @pytest.mark.asyncio
    async def test_no_client_is_noop(self):
        await publish_event(None, "pubsub:anything", {"x": 1})

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self):
        class DownRedis:
            async def publish(self, channel, message):
                raise ConnectionError("down")

        await publish_event(DownRedis(), "pubsub:anything", {"x": 1})

    @pytest.mark.asyncio
    async def test_resolution_publishes_winner(self, db_session, make_user):
        creator = await make_user("creator", balance="10")
        opponent = await make_user("opponent", balance="10")
        bet = await create_bet(db_session, creator.id, title="Coin flip", amount=Decimal("1"), opponent_id=opponent.id)
        await accept_bet(db_session, bet.id, opponent.id)

        redis = RecordingRedis()
        await resolve_bet(db_session, bet.id, creator.id)
        assert pending_events(db_session)[0][0] == CHANNEL_BET_RESOLVED
        assert redis.messages == []

        await db_session.commit()
        assert await flush_events(db_session, redis) == 1

        assert redis.messages == [(
            CHANNEL_BET_RESOLVED,
            {
                "bet_id": bet.id,
                "title": "Coin flip",
                "winner_id": creator.id,
                "participants": [creator.id, opponent.id],
            },
        )]

    @pytest.mark.asyncio
    async def test_rollback_discards_queued_events(self, db_session, make_user):
        creator = await make_user("creator", balance="10")
        opponent = await make_user("opponent", balance="10")
        bet = await create_bet(db_session, creator.id, title="Coin flip", amount=Decimal("1"), opponent_id=opponent.id)
        await accept_bet(db_session, bet.id, opponent.id)
        await db_session.commit()

        await resolve_bet(db_session, bet.id, creator.id)
        assert len(pending_events(db_session)) == 1
        await db_session.rollback()

        redis = RecordingRedis()
        assert await flush_events(db_session, redis) == 0
        assert redis.messages == []
