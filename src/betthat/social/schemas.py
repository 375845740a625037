"""Pydantic schemas for friend and group endpoints.

The friend endpoints keep the camelCase field names the web client sends
(userId, friendId, requestId).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from betthat.users.schemas import UserSummary

# --- Friends ---


class FriendRequestBody(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    friend_id: str = Field(..., alias="friendId", min_length=1)


class FriendRespondBody(BaseModel):
    request_id: str = Field(..., alias="requestId", min_length=1)
    status: Literal["accepted", "rejected"]


class SuccessResponse(BaseModel):
    success: bool = True


class PendingRequestResponse(BaseModel):
    id: str
    user_id: str
    sender: UserSummary
    created_at: datetime


class PendingRequestsResponse(BaseModel):
    requests: list[PendingRequestResponse]


class FriendListResponse(BaseModel):
    friends: list[UserSummary]


# --- Groups ---


class CreateGroupRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=64)
    description: str | None = Field(None, max_length=500)


class JoinGroupRequest(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=16)


class GroupMemberResponse(BaseModel):
    id: str
    joined_at: datetime
    user: UserSummary


class GroupResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    name: str
    description: str | None = None
    created_by: str
    created_at: datetime
    invite_code: str | None = None  # only shown to members


class GroupDetailResponse(GroupResponse):
    members: list[GroupMemberResponse] = []


class GroupListResponse(BaseModel):
    groups: list[GroupResponse]


class SendMessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    id: str
    text: str
    created_at: datetime
    user: UserSummary


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
