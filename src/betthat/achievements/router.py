"""Achievement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.achievements.schemas import (
    AchievementListResponse,
    AchievementResponse,
    UserAchievementListResponse,
    UserAchievementResponse,
)
from betthat.achievements.service import get_achievements, get_user_achievements
from betthat.auth.dependencies import get_current_user
from betthat.database import get_session
from betthat.db.models import User

router = APIRouter(prefix="/api/achievements", tags=["Achievements"])


@router.get("", response_model=AchievementListResponse)
async def list_achievements(db: AsyncSession = Depends(get_session)):
    """All achievement definitions (public)."""
    achievements = await get_achievements(db)
    return AchievementListResponse(
        achievements=[AchievementResponse.model_validate(a) for a in achievements],
    )


@router.get("/me", response_model=UserAchievementListResponse)
async def my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Every achievement with the caller's progress."""
    items = await get_user_achievements(db, user.id)
    return UserAchievementListResponse(
        achievements=[UserAchievementResponse(**item) for item in items],
        bet_coins=user.bet_coins,
    )
