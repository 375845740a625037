"""Integration: wallet holdings, deposits and ledger history."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


class TestDeposit:
    @pytest.mark.asyncio
    async def test_replayed_request_key_credits_once(self, client: AsyncClient, make_user, auth):
        user = await make_user("saver")
        body = {"amount": "25.50", "request_key": "tap-1"}

        first = await client.post("/api/wallet/deposit", json=body, headers=auth(user))
        again = await client.post("/api/wallet/deposit", json=body, headers=auth(user))

        assert first.json() == {"bet_coins": 0, "balance": 25.5, "credited": True}
        assert again.status_code == 200
        assert again.json() == {"bet_coins": 0, "balance": 25.5, "credited": False}

        history = (await client.get("/api/wallet/transactions", headers=auth(user))).json()
        assert [(t["type"], t["amount"]) for t in history["transactions"]] == [("deposit", 25.5)]

    @pytest.mark.asyncio
    async def test_keys_are_scoped_per_user(self, client: AsyncClient, make_user, auth):
        alice = await make_user("alice")
        bob = await make_user("bob")
        body = {"amount": "10", "request_key": "same"}

        await client.post("/api/wallet/deposit", json=body, headers=auth(alice))
        response = await client.post("/api/wallet/deposit", json=body, headers=auth(bob))

        assert response.json()["credited"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5", "10000.01", "1.234"])
    async def test_invalid_amount_is_400(self, client: AsyncClient, make_user, auth, amount):
        user = await make_user("careless")
        response = await client.post(
            "/api/wallet/deposit", json={"amount": amount, "request_key": "k"}, headers=auth(user),
        )
        assert response.status_code == 400
        assert "amount" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/wallet/deposit", json={"amount": "5", "request_key": "k"})
        assert response.status_code == 401
