"""Friend and group endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.achievements.trigger import AchievementTrigger
from betthat.auth.dependencies import ensure_same_user, get_current_user
from betthat.bets.schemas import BetListResponse, BetResponse
from betthat.bets.service import get_group_bets
from betthat.database import get_session
from betthat.db.models import User
from betthat.events import flush_events
from betthat.redis_client import get_redis_or_none
from betthat.social.friendship_service import (
    ACCEPTED,
    get_friends,
    get_pending_requests,
    remove_friend,
    respond_to_friend_request,
    send_friend_request,
)
from betthat.social.group_service import (
    create_group,
    get_group_details,
    get_group_messages,
    get_user_groups,
    is_member,
    join_group_by_code,
    leave_group,
    send_group_message,
)
from betthat.social.schemas import (
    CreateGroupRequest,
    FriendListResponse,
    FriendRequestBody,
    FriendRespondBody,
    GroupDetailResponse,
    GroupListResponse,
    GroupMemberResponse,
    GroupResponse,
    JoinGroupRequest,
    MessageListResponse,
    MessageResponse,
    PendingRequestResponse,
    PendingRequestsResponse,
    SendMessageRequest,
    SuccessResponse,
)
from betthat.users.schemas import UserSummary

friends_router = APIRouter(prefix="/api/friends", tags=["Friends"])
groups_router = APIRouter(prefix="/api/groups", tags=["Groups"])


# --- Friends ---


@friends_router.get("/pending", response_model=PendingRequestsResponse)
async def pending_requests(
    user_id: str = Query(..., alias="userId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Pending requests received by the caller, oldest first."""
    ensure_same_user(user, user_id)
    rows = await get_pending_requests(db, user.id)
    return PendingRequestsResponse(requests=[
        PendingRequestResponse(
            id=friendship.id,
            user_id=friendship.user_id,
            sender=UserSummary.model_validate(sender),
            created_at=friendship.created_at,
        )
        for friendship, sender in rows
    ])


@friends_router.post("/request", response_model=SuccessResponse)
async def request_friend(
    body: FriendRequestBody,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    ensure_same_user(user, body.user_id)
    try:
        await send_friend_request(db, user.id, body.friend_id)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return SuccessResponse()


@friends_router.post("/respond", response_model=SuccessResponse)
async def respond_friend(
    body: FriendRespondBody,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_or_none),
):
    """Accept or reject a request addressed to the caller."""
    try:
        friendship = await respond_to_friend_request(db, body.request_id, user.id, body.status)
        if friendship is not None and friendship.status == ACCEPTED:
            await AchievementTrigger(db).on_event(
                "friend_accepted", [friendship.user_id, friendship.friend_id],
            )
        await db.commit()
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await flush_events(db, redis)
    return SuccessResponse()


@friends_router.get("", response_model=FriendListResponse)
async def list_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    friends = await get_friends(db, user.id)
    return FriendListResponse(friends=[UserSummary.model_validate(f) for f in friends])


@friends_router.delete("/{friend_id}", response_model=SuccessResponse)
async def unfriend(
    friend_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    if not await remove_friend(db, user.id, friend_id):
        raise HTTPException(status_code=404, detail="Friendship not found")
    await db.commit()
    return SuccessResponse()


# --- Groups ---


def _group_response(group, *, member: bool) -> GroupResponse:  # noqa: ANN001
    response = GroupResponse.model_validate(group)
    if not member:
        response.invite_code = None
    return response


@groups_router.post("", response_model=GroupResponse, status_code=201)
async def create_group_endpoint(
    body: CreateGroupRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_or_none),
):
    group = await create_group(db, body.name, body.description, user.id)
    await AchievementTrigger(db).on_event("group_joined", [user.id])
    await db.commit()
    await flush_events(db, redis)
    return GroupResponse.model_validate(group)


@groups_router.get("", response_model=GroupListResponse)
async def list_my_groups(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    groups = await get_user_groups(db, user.id)
    return GroupListResponse(groups=[GroupResponse.model_validate(g) for g in groups])


@groups_router.post("/join", response_model=GroupResponse)
async def join_group_endpoint(
    body: JoinGroupRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_or_none),
):
    try:
        group = await join_group_by_code(db, user.id, body.invite_code)
        await AchievementTrigger(db).on_event("group_joined", [user.id])
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await flush_events(db, redis)
    return GroupResponse.model_validate(group)


@groups_router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group_endpoint(
    group_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Group with its member list. The invite code is only returned to members."""
    details = await get_group_details(db, group_id)
    if details is None:
        raise HTTPException(status_code=404, detail="Group not found")
    group, members = details
    member_ids = {m.user_id for m, _ in members}
    base = _group_response(group, member=user.id in member_ids)
    return GroupDetailResponse(
        **base.model_dump(),
        members=[
            GroupMemberResponse(
                id=membership.id,
                joined_at=membership.joined_at,
                user=UserSummary.model_validate(member),
            )
            for membership, member in members
        ],
    )


@groups_router.post("/{group_id}/leave", response_model=SuccessResponse)
async def leave_group_endpoint(
    group_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    if not await leave_group(db, user.id, group_id):
        raise HTTPException(status_code=404, detail="Not a member of this group")
    await db.commit()
    return SuccessResponse()


@groups_router.get("/{group_id}/bets", response_model=BetListResponse)
async def group_bets(
    group_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    if not await is_member(db, group_id, user.id):
        raise HTTPException(status_code=403, detail="Only group members can view group bets")
    bets = await get_group_bets(db, group_id)
    return BetListResponse(bets=[BetResponse.model_validate(b) for b in bets])


@groups_router.get("/{group_id}/messages", response_model=MessageListResponse)
async def list_messages(
    group_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    if not await is_member(db, group_id, user.id):
        raise HTTPException(status_code=403, detail="Only group members can read messages")
    rows = await get_group_messages(db, group_id)
    return MessageListResponse(messages=[
        MessageResponse(
            id=message.id,
            text=message.text,
            created_at=message.created_at,
            user=UserSummary.model_validate(author),
        )
        for message, author in rows
    ])


@groups_router.post("/{group_id}/messages", response_model=MessageResponse, status_code=201)
async def post_message(
    group_id: str,
    body: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        message = await send_group_message(db, group_id, user.id, body.text)
        await db.commit()
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return MessageResponse(
        id=message.id,
        text=message.text,
        created_at=message.created_at,
        user=UserSummary.model_validate(user),
    )
