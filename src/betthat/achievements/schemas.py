"""Pydantic response models for achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AchievementResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    slug: str
    name: str
    description: str | None = None
    category: str
    icon: str | None = None
    color: str | None = None
    max_tier: int
    tier_thresholds: list[int]
    tier_rewards: list[int]


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]


class UserAchievementResponse(AchievementResponse):
    user_progress: int
    current_tier: int
    completed: bool
    completed_at: datetime | None = None
    next_threshold: int | None = None
    next_reward: int | None = None
    progress_percentage: int


class UserAchievementListResponse(BaseModel):
    achievements: list[UserAchievementResponse]
    bet_coins: int
