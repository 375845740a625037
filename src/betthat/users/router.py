"""User endpoints: profile, search, stats."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.auth.dependencies import Identity, get_current_identity, get_current_user
from betthat.config import get_settings
from betthat.database import get_session
from betthat.db.models import User
from betthat.users.schemas import (
    CreateProfileRequest,
    UpdateProfileRequest,
    UserProfileResponse,
    UserSearchResponse,
    UserStatsResponse,
    UserSummary,
)
from betthat.users.service import (
    create_profile,
    get_user_profile,
    get_user_stats,
    search_users,
    update_user_profile,
)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("/me", response_model=UserProfileResponse, status_code=201)
async def create_my_profile(
    body: CreateProfileRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    """Create the profile for a freshly signed-up identity."""
    email = body.email or identity.email
    if not email:
        raise HTTPException(status_code=400, detail="email is required")
    try:
        user = await create_profile(
            db, identity.user_id, body.username, str(email), body.full_name, body.avatar_url,
        )
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return UserProfileResponse.model_validate(user)


@router.get("/me", response_model=UserProfileResponse)
async def get_my_profile(user: User = Depends(get_current_user)):
    """Return the caller's full profile, balances included."""
    return UserProfileResponse.model_validate(user)


@router.patch("/me", response_model=UserProfileResponse)
async def update_my_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        user = await update_user_profile(db, user, body.username, body.full_name, body.avatar_url)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return UserProfileResponse.model_validate(user)


@router.get("/search", response_model=UserSearchResponse)
async def search_users_endpoint(
    query: str = Query(""),
    db: AsyncSession = Depends(get_session),
):
    """Search users by username or full name. Short queries return an empty list."""
    settings = get_settings()
    users = await search_users(
        db, query, limit=settings.user_search_limit, min_length=settings.user_search_min_length,
    )
    return UserSearchResponse(users=[UserSummary.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=UserSummary)
async def get_user_endpoint(user_id: str, db: AsyncSession = Depends(get_session)):
    user = await get_user_profile(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserSummary.model_validate(user)


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
async def get_user_stats_endpoint(user_id: str, db: AsyncSession = Depends(get_session)):
    stats = await get_user_stats(db, user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserStatsResponse(**stats)
