"""Bet endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.achievements.trigger import AchievementTrigger
from betthat.auth.dependencies import get_current_user
from betthat.bets.schemas import (
    AddCommentRequest,
    AddEvidenceRequest,
    BetDetailResponse,
    BetListResponse,
    BetResponse,
    CommentResponse,
    CreateBetRequest,
    EvidenceResponse,
    ResolveBetRequest,
)
from betthat.bets.service import (
    ACTIVE,
    accept_bet,
    add_comment,
    add_evidence,
    can_resolve,
    can_view,
    cancel_bet,
    create_bet,
    get_bet_details,
    get_friends_bets,
    get_user_bets,
    resolve_bet,
)
from betthat.config import get_settings
from betthat.database import get_session
from betthat.db.models import User
from betthat.events import flush_events
from betthat.redis_client import get_redis_or_none

router = APIRouter(prefix="/api/bets", tags=["Bets"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Bet not found")


@router.post("", response_model=BetResponse, status_code=201)
async def create_bet_endpoint(
    body: CreateBetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Challenge an opponent. The bet starts pending until they accept."""
    try:
        bet = await create_bet(db, user.id, **body.model_dump())
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return BetResponse.model_validate(bet)


@router.get("", response_model=BetListResponse)
async def list_my_bets(
    status: Literal["pending", "active", "completed", "cancelled"] | None = Query(None),
    role: Literal["participant", "verifier"] = Query("participant"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    bets = await get_user_bets(db, user.id, status, role)
    return BetListResponse(bets=[BetResponse.model_validate(b) for b in bets])


@router.get("/feed", response_model=BetListResponse)
async def friends_feed(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Recent public bets involving the caller's friends."""
    bets = await get_friends_bets(db, user.id, limit=get_settings().friends_feed_limit)
    return BetListResponse(bets=[BetResponse.model_validate(b) for b in bets])


@router.get("/{bet_id}", response_model=BetDetailResponse)
async def get_bet_endpoint(
    bet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    details = await get_bet_details(db, bet_id)
    if details is None:
        raise _not_found()
    bet, comments, evidence = details
    if not await can_view(db, bet, user.id):
        raise _not_found()
    return BetDetailResponse(
        bet=BetResponse.model_validate(bet),
        comments=[CommentResponse.model_validate(c) for c in comments],
        evidence=[EvidenceResponse.model_validate(e) for e in evidence],
        can_resolve=bet.status == ACTIVE and can_resolve(bet, user.id),
    )


@router.post("/{bet_id}/accept", response_model=BetResponse)
async def accept_bet_endpoint(
    bet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_or_none),
):
    """Opponent takes the bet. Both stakes are escrowed."""
    try:
        bet = await accept_bet(db, bet_id, user.id)
        if bet is None:
            raise _not_found()
        await AchievementTrigger(db).on_event("bet_accepted", [bet.creator_id, bet.opponent_id])
        await db.commit()
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await flush_events(db, redis)
    return BetResponse.model_validate(bet)


@router.post("/{bet_id}/cancel", response_model=BetResponse)
async def cancel_bet_endpoint(
    bet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        bet = await cancel_bet(db, bet_id, user.id)
        if bet is None:
            raise _not_found()
        await db.commit()
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return BetResponse.model_validate(bet)


@router.post("/{bet_id}/resolve", response_model=BetResponse)
async def resolve_bet_endpoint(
    bet_id: str,
    body: ResolveBetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_or_none),
):
    """Declare the winner of an active bet and settle the stakes."""
    try:
        bet = await resolve_bet(db, bet_id, body.winner_id, resolver_id=user.id)
        if bet is None:
            raise _not_found()
        trigger = AchievementTrigger(db)
        await trigger.on_event("bet_resolved", [bet.creator_id, bet.opponent_id])
        if bet.verifier_id:
            await trigger.on_event("bet_verified", [bet.verifier_id])
        await db.commit()
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await flush_events(db, redis)
    return BetResponse.model_validate(bet)


@router.post("/{bet_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment_endpoint(
    bet_id: str,
    body: AddCommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        comment = await add_comment(db, bet_id, user.id, body.text)
        if comment is None:
            raise _not_found()
        await db.commit()
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return CommentResponse.model_validate(comment)


@router.post("/{bet_id}/evidence", response_model=EvidenceResponse, status_code=201)
async def add_evidence_endpoint(
    bet_id: str,
    body: AddEvidenceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        evidence = await add_evidence(db, bet_id, user.id, body.text, body.image_url)
        if evidence is None:
            raise _not_found()
        await db.commit()
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return EvidenceResponse.model_validate(evidence)
