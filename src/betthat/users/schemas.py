"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class CreateProfileRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr | None = None
    full_name: str | None = Field(None, max_length=128)
    avatar_url: str | None = None


class UpdateProfileRequest(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    full_name: str | None = Field(None, max_length=128)
    avatar_url: str | None = None


class UserSummary(BaseModel):
    """Public card used in search results, friend lists and group members."""

    model_config = {"from_attributes": True}

    id: str
    username: str
    full_name: str | None = None
    avatar_url: str | None = None


class UserProfileResponse(UserSummary):
    email: str
    bet_coins: int
    balance: float
    win_rate: float
    created_at: datetime


class UserSearchResponse(BaseModel):
    users: list[UserSummary]


class UserStatsResponse(BaseModel):
    total_bets: int
    win_rate: float
