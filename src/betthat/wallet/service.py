"""Coin ledger: balance and Bet-Coin movements with idempotency keys.

Every credit or debit is one row in ``transactions`` keyed by a unique
idempotency key; replaying the same key is a no-op. The user's denormalized
``bet_coins``/``balance`` are updated in the same flush, so the caller's
commit makes both visible together.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.db.models import CoinTransaction, User

logger = logging.getLogger(__name__)

TX_ACHIEVEMENT_REWARD = "achievement_reward"
TX_BET_STAKE = "bet_stake"
TX_BET_PAYOUT = "bet_payout"
TX_DEPOSIT = "deposit"


class InsufficientFundsError(ValueError):
    """The debit would take a balance below zero."""


async def has_transaction(db: AsyncSession, idempotency_key: str) -> bool:
    result = await db.execute(
        select(CoinTransaction.id).where(CoinTransaction.idempotency_key == idempotency_key)
    )
    return result.scalar_one_or_none() is not None


async def record_transaction(
    db: AsyncSession,
    user_id: str,
    *,
    idempotency_key: str,
    tx_type: str,
    bet_coins: int | None = None,
    amount: Decimal | None = None,
    description: str | None = None,
    bet_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> bool:
    """Apply a signed delta to a user's coins and/or balance.

    Returns True if applied, False if the idempotency key was already used.

    Raises:
        LookupError: If the user does not exist.
        InsufficientFundsError: If a debit exceeds what the user holds.
    """
    if await has_transaction(db, idempotency_key):
        return False

    result = await db.execute(select(User).where(User.id == user_id).with_for_update())
    user = result.scalar_one_or_none()
    if user is None:
        msg = f"User {user_id} not found"
        raise LookupError(msg)

    if bet_coins:
        if user.bet_coins + bet_coins < 0:
            msg = "Insufficient Bet-Coins"
            raise InsufficientFundsError(msg)
        user.bet_coins += bet_coins
    if amount:
        if user.balance + amount < 0:
            msg = "Insufficient balance"
            raise InsufficientFundsError(msg)
        user.balance += amount

    db.add(CoinTransaction(
        user_id=user_id,
        amount=amount,
        bet_coins=bet_coins,
        type=tx_type,
        description=description,
        bet_id=bet_id,
        idempotency_key=idempotency_key,
        tx_metadata=metadata or {},
    ))
    await db.flush()
    return True


async def award_bet_coins(
    db: AsyncSession,
    user_id: str,
    amount: int,
    description: str,
    idempotency_key: str,
) -> bool:
    """Credit Bet-Coins to a user. Returns True if credited, False if duplicate."""
    if amount <= 0:
        msg = "Award amount must be positive"
        raise ValueError(msg)
    credited = await record_transaction(
        db,
        user_id,
        idempotency_key=idempotency_key,
        tx_type=TX_ACHIEVEMENT_REWARD,
        bet_coins=amount,
        description=description,
    )
    if credited:
        logger.info("Awarded %d Bet-Coins to %s (%s)", amount, user_id, description)
    return credited


async def deposit_funds(
    db: AsyncSession,
    user_id: str,
    amount: Decimal,
    request_key: str,
) -> bool:
    """Add cash to a user's balance so they can stake bets.

    ``request_key`` identifies the deposit on the client; retrying with the
    same key credits nothing. Returns True if credited.
    """
    if amount <= 0:
        msg = "Deposit amount must be positive"
        raise ValueError(msg)
    credited = await record_transaction(
        db,
        user_id,
        idempotency_key=f"deposit:{user_id}:{request_key}",
        tx_type=TX_DEPOSIT,
        amount=amount,
        description="Deposit",
    )
    if credited:
        logger.info("Deposited %s to %s", amount, user_id)
    return credited


async def get_bet_coins(db: AsyncSession, user_id: str) -> int:
    """Current Bet-Coin holdings; 0 for unknown users."""
    result = await db.execute(select(User.bet_coins).where(User.id == user_id))
    return result.scalar_one_or_none() or 0


async def get_coin_transactions(
    db: AsyncSession,
    user_id: str,
    coins_only: bool = False,
    limit: int = 50,
) -> list[CoinTransaction]:
    """Ledger entries for a user, newest first."""
    query = select(CoinTransaction).where(CoinTransaction.user_id == user_id)
    if coins_only:
        query = query.where(CoinTransaction.bet_coins.is_not(None))
    result = await db.execute(query.order_by(CoinTransaction.created_at.desc()).limit(limit))
    return list(result.scalars().all())
