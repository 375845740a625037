"""Pydantic schemas for wallet endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class WalletResponse(BaseModel):
    bet_coins: int
    balance: float


class TransactionResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    type: str
    amount: float | None = None
    bet_coins: int | None = None
    description: str | None = None
    bet_id: str | None = None
    created_at: datetime


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]


class DepositRequest(BaseModel):
    amount: Decimal = Field(gt=0, le=Decimal("10000"), decimal_places=2)
    request_key: str = Field(min_length=1, max_length=64)


class DepositResponse(WalletResponse):
    credited: bool
