"""Stake escrow and payout for bets.

Stakes are taken from both participants when the opponent accepts; the winner
receives both stakes on resolution. Coin-denominated bets move Bet-Coins,
other bets move the cash balance. Every movement goes through the ledger with
a per-bet idempotency key, so a bet is paid out at most once.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.db.models import Bet, User
from betthat.wallet.service import TX_BET_PAYOUT, TX_BET_STAKE, record_transaction


def stake_key(bet_id: str, user_id: str) -> str:
    return f"bet:{bet_id}:stake:{user_id}"


def payout_key(bet_id: str) -> str:
    return f"bet:{bet_id}:payout"


def _delta(bet: Bet, amount: Decimal) -> dict[str, int | Decimal]:
    if bet.is_coin_denominated:
        return {"bet_coins": int(amount)}
    return {"amount": amount}


async def escrow_stakes(db: AsyncSession, bet: Bet) -> None:
    """Debit the stake from both participants.

    Raises:
        InsufficientFundsError: If either participant cannot cover the stake.
    """
    for user_id in (bet.creator_id, bet.opponent_id):
        await record_transaction(
            db,
            user_id,
            idempotency_key=stake_key(bet.id, user_id),
            tx_type=TX_BET_STAKE,
            description=f"Stake: {bet.title}",
            bet_id=bet.id,
            **_delta(bet, -bet.amount),
        )


async def pay_out(db: AsyncSession, bet: Bet) -> bool:
    """Credit both stakes to the winner. False if already paid."""
    if bet.winner_id is None:
        raise ValueError("Bet has no winner")
    return await record_transaction(
        db,
        bet.winner_id,
        idempotency_key=payout_key(bet.id),
        tx_type=TX_BET_PAYOUT,
        description=f"Won: {bet.title}",
        bet_id=bet.id,
        **_delta(bet, bet.amount * 2),
    )


async def recompute_win_rate(db: AsyncSession, user_id: str) -> float:
    """Set users.win_rate to wins / completed bets the user took part in."""
    participated = or_(Bet.creator_id == user_id, Bet.opponent_id == user_id)
    totals = await db.execute(
        select(func.count(), func.count(Bet.winner_id).filter(Bet.winner_id == user_id))
        .select_from(Bet)
        .where(participated, Bet.status == "completed")
    )
    completed, wins = totals.one()
    win_rate = round(wins / completed, 4) if completed else 0.0

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is not None:
        user.win_rate = win_rate
        await db.flush()
    return win_rate
