"""Bet lifecycle: creation, acceptance, cancellation, resolution, comments and evidence.

Statuses: pending -> active -> completed, or pending -> cancelled.
Once completed, winner_id is one of the participants and never changes.
Service functions flush but never commit; the caller owns the transaction,
so a failure anywhere leaves no partial state behind.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import or_, select

from betthat.bets.settlement import escrow_stakes, pay_out, recompute_win_rate
from betthat.db.models import Bet, Comment, Evidence
from betthat.events import queue_event
from betthat.redis_client import CHANNEL_BET_RESOLVED
from betthat.social.friendship_service import get_friend_ids
from betthat.social.group_service import is_member
from betthat.users.service import get_user_profile

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PENDING = "pending"
ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"
BET_STATUSES = (PENDING, ACTIVE, COMPLETED, CANCELLED)


def is_involved(bet: Bet, user_id: str) -> bool:
    """Creator, opponent or verifier."""
    return user_id in (bet.creator_id, bet.opponent_id, bet.verifier_id)


def can_resolve(bet: Bet, user_id: str) -> bool:
    """Verified bets are resolved by the verifier only; others by either participant."""
    if bet.third_party_verification:
        return user_id == bet.verifier_id
    return user_id in (bet.creator_id, bet.opponent_id)


async def can_view(db: AsyncSession, bet: Bet, user_id: str | None) -> bool:
    if bet.is_public:
        return True
    if user_id is None:
        return False
    if is_involved(bet, user_id):
        return True
    return bet.group_id is not None and await is_member(db, bet.group_id, user_id)


async def get_bet(db: AsyncSession, bet_id: str, for_update: bool = False) -> Bet | None:
    query = select(Bet).where(Bet.id == bet_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def create_bet(
    db: AsyncSession,
    creator_id: str,
    *,
    title: str,
    amount: Decimal,
    opponent_id: str,
    description: str | None = None,
    is_coin_denominated: bool = False,
    category: str | None = None,
    group_id: str | None = None,
    third_party_verification: bool = False,
    verifier_id: str | None = None,
    is_public: bool = True,
    end_date: datetime | None = None,
    image_url: str | None = None,
) -> Bet:
    """
    Create a pending bet between the creator and an opponent.

    Raises:
        ValueError: If any participant rule is violated.
    """
    if amount <= 0:
        raise ValueError("amount must be greater than zero")
    if is_coin_denominated and amount != amount.to_integral_value():
        raise ValueError("Bet-Coin amounts must be whole numbers")
    if opponent_id == creator_id:
        raise ValueError("You cannot bet against yourself")
    if await get_user_profile(db, opponent_id) is None:
        raise ValueError("Opponent not found")

    if third_party_verification:
        if not verifier_id:
            raise ValueError("verifier_id is required when third_party_verification is set")
        if verifier_id in (creator_id, opponent_id):
            raise ValueError("The verifier cannot be a participant")
        if await get_user_profile(db, verifier_id) is None:
            raise ValueError("Verifier not found")
    elif verifier_id is not None:
        raise ValueError("verifier_id requires third_party_verification")

    if group_id is not None:
        for participant in (creator_id, opponent_id):
            if not await is_member(db, group_id, participant):
                raise ValueError("Both participants must be members of the group")

    if end_date is not None:
        if end_date.tzinfo is None:
            end_date = end_date.replace(tzinfo=timezone.utc)
        if end_date <= datetime.now(timezone.utc):
            raise ValueError("end_date must be in the future")

    bet = Bet(
        title=title,
        description=description,
        amount=amount,
        is_coin_denominated=is_coin_denominated,
        category=category,
        creator_id=creator_id,
        opponent_id=opponent_id,
        group_id=group_id,
        status=PENDING,
        third_party_verification=third_party_verification,
        verifier_id=verifier_id,
        is_public=is_public,
        end_date=end_date,
        image_url=image_url,
    )
    db.add(bet)
    await db.flush()
    logger.info("bet_created", bet_id=bet.id, creator_id=creator_id, opponent_id=opponent_id)
    return bet


async def accept_bet(db: AsyncSession, bet_id: str, user_id: str) -> Bet | None:
    """Opponent accepts: pending -> active, both stakes escrowed.

    Raises:
        PermissionError: Caller is not the opponent.
        ValueError: Bet is not pending, or a participant cannot cover the stake.
    """
    bet = await get_bet(db, bet_id, for_update=True)
    if bet is None:
        return None
    if user_id != bet.opponent_id:
        raise PermissionError("Only the opponent can accept this bet")
    if bet.status != PENDING:
        raise ValueError("Bet is not pending")

    await escrow_stakes(db, bet)
    bet.status = ACTIVE
    bet.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("bet_accepted", bet_id=bet.id)
    return bet


async def cancel_bet(db: AsyncSession, bet_id: str, user_id: str) -> Bet | None:
    """Either participant withdraws a pending bet. No stakes were taken yet."""
    bet = await get_bet(db, bet_id, for_update=True)
    if bet is None:
        return None
    if user_id not in (bet.creator_id, bet.opponent_id):
        raise PermissionError("Only a participant can cancel this bet")
    if bet.status != PENDING:
        raise ValueError("Only pending bets can be cancelled")

    bet.status = CANCELLED
    bet.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("bet_cancelled", bet_id=bet.id, by=user_id)
    return bet


async def resolve_bet(
    db: AsyncSession,
    bet_id: str,
    winner_id: str,
    resolver_id: str | None = None,
) -> Bet | None:
    """Complete an active bet with a winner and settle it.

    Returns None if the bet does not exist. Resolving a bet that is not
    active (including one already completed) is rejected.

    Raises:
        PermissionError: resolver_id is given and may not resolve this bet.
        ValueError: Bet is not active, or the winner is not a participant.
    """
    bet = await get_bet(db, bet_id, for_update=True)
    if bet is None:
        return None
    if resolver_id is not None and not can_resolve(bet, resolver_id):
        raise PermissionError("You are not allowed to resolve this bet")
    if bet.status != ACTIVE:
        raise ValueError("Bet is not active")
    if winner_id not in (bet.creator_id, bet.opponent_id):
        raise ValueError("Winner must be the creator or the opponent")

    now = datetime.now(timezone.utc)
    bet.status = COMPLETED
    bet.winner_id = winner_id
    bet.resolved_at = now
    bet.updated_at = now
    await db.flush()

    await pay_out(db, bet)
    for participant in (bet.creator_id, bet.opponent_id):
        await recompute_win_rate(db, participant)

    logger.info("bet_resolved", bet_id=bet.id, winner_id=winner_id, resolver_id=resolver_id)
    _queue_bet_resolved(db, bet)
    return bet


def _queue_bet_resolved(db: AsyncSession, bet: Bet) -> None:
    queue_event(db, CHANNEL_BET_RESOLVED, {
        "bet_id": bet.id,
        "title": bet.title,
        "winner_id": bet.winner_id,
        "participants": [bet.creator_id, bet.opponent_id],
    })


async def get_user_bets(
    db: AsyncSession,
    user_id: str,
    status: str | None = None,
    role: str = "participant",
) -> list[Bet]:
    """Bets the user created or was challenged to, newest first.

    With ``role="verifier"`` it lists the bets the user was asked to judge instead.
    """
    if role == "verifier":
        query = select(Bet).where(Bet.verifier_id == user_id)
    elif role == "participant":
        query = select(Bet).where(or_(Bet.creator_id == user_id, Bet.opponent_id == user_id))
    else:
        raise ValueError(f"Unknown role: {role}")
    if status:
        query = query.where(Bet.status == status)
    result = await db.execute(query.order_by(Bet.created_at.desc()))
    return list(result.scalars().all())


async def get_bet_details(
    db: AsyncSession,
    bet_id: str,
) -> tuple[Bet, list[Comment], list[Evidence]] | None:
    """The bet with its comments and evidence, both oldest first."""
    bet = await get_bet(db, bet_id)
    if bet is None:
        return None

    comments = await db.execute(
        select(Comment).where(Comment.bet_id == bet_id).order_by(Comment.created_at.asc())
    )
    evidence = await db.execute(
        select(Evidence).where(Evidence.bet_id == bet_id).order_by(Evidence.created_at.asc())
    )
    return bet, list(comments.scalars().all()), list(evidence.scalars().all())


async def add_comment(db: AsyncSession, bet_id: str, user_id: str, text: str) -> Comment | None:
    """Append a comment. Private bets only accept comments from people who can see them."""
    bet = await get_bet(db, bet_id)
    if bet is None:
        return None
    if not text.strip():
        raise ValueError("Comment text must not be empty")
    if not await can_view(db, bet, user_id):
        raise PermissionError("You cannot comment on this bet")

    comment = Comment(bet_id=bet_id, user_id=user_id, text=text.strip())
    db.add(comment)
    await db.flush()
    return comment


async def add_evidence(
    db: AsyncSession,
    bet_id: str,
    user_id: str,
    text: str | None,
    image_url: str | None,
) -> Evidence | None:
    """Append evidence from a participant or the verifier. Text or image is required."""
    bet = await get_bet(db, bet_id)
    if bet is None:
        return None
    text = text.strip() if text else None
    if not text and not image_url:
        raise ValueError("Evidence needs text or an image")
    if not is_involved(bet, user_id):
        raise PermissionError("Only participants and the verifier can add evidence")

    evidence = Evidence(bet_id=bet_id, user_id=user_id, text=text, image_url=image_url)
    db.add(evidence)
    await db.flush()
    return evidence


async def get_group_bets(db: AsyncSession, group_id: str) -> list[Bet]:
    result = await db.execute(
        select(Bet).where(Bet.group_id == group_id).order_by(Bet.created_at.desc())
    )
    return list(result.scalars().all())


async def get_friends_bets(db: AsyncSession, user_id: str, limit: int = 20) -> list[Bet]:
    """Public bets involving the user's accepted friends, newest first."""
    friend_ids = await get_friend_ids(db, user_id)
    if not friend_ids:
        return []

    result = await db.execute(
        select(Bet)
        .where(
            or_(Bet.creator_id.in_(friend_ids), Bet.opponent_id.in_(friend_ids)),
            Bet.is_public.is_(True),
        )
        .order_by(Bet.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
