"""Wallet endpoints: holdings and ledger history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.auth.dependencies import get_current_user
from betthat.database import get_session
from betthat.db.models import User
from betthat.wallet.schemas import (
    DepositRequest,
    DepositResponse,
    TransactionListResponse,
    TransactionResponse,
    WalletResponse,
)
from betthat.wallet.service import deposit_funds, get_coin_transactions

router = APIRouter(prefix="/api/wallet", tags=["Wallet"])


@router.get("", response_model=WalletResponse)
async def get_wallet(user: User = Depends(get_current_user)):
    return WalletResponse(bet_coins=user.bet_coins, balance=user.balance)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    coins_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    rows = await get_coin_transactions(db, user.id, coins_only=coins_only, limit=limit)
    return TransactionListResponse(transactions=[TransactionResponse.model_validate(r) for r in rows])


@router.post("/deposit", response_model=DepositResponse)
async def deposit(
    body: DepositRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Fund the caller's cash balance. Replaying a request_key is a no-op."""
    try:
        credited = await deposit_funds(db, user.id, body.amount, body.request_key)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.refresh(user)
    return DepositResponse(bet_coins=user.bet_coins, balance=user.balance, credited=credited)
