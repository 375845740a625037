"""Pydantic schemas for bet endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field, model_validator


class CreateBetRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=2000)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    is_coin_denominated: bool = False
    category: str | None = Field(None, max_length=64)
    opponent_id: str = Field(..., min_length=1)
    group_id: str | None = None
    third_party_verification: bool = False
    verifier_id: str | None = None
    is_public: bool = True
    end_date: datetime | None = None
    image_url: str | None = None

    @model_validator(mode="after")
    def _verifier_matches_flag(self) -> CreateBetRequest:
        if self.third_party_verification and not self.verifier_id:
            raise ValueError("verifier_id is required when third_party_verification is set")
        if not self.third_party_verification and self.verifier_id:
            raise ValueError("verifier_id requires third_party_verification")
        return self


class ResolveBetRequest(BaseModel):
    winner_id: str = Field(..., min_length=1, validation_alias=AliasChoices("winner_id", "winnerId"))


class AddCommentRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class AddEvidenceRequest(BaseModel):
    text: str | None = Field(None, max_length=2000)
    image_url: str | None = None

    @model_validator(mode="after")
    def _has_content(self) -> AddEvidenceRequest:
        if not (self.text and self.text.strip()) and not self.image_url:
            raise ValueError("Evidence needs text or an image")
        return self


class BetResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    title: str
    description: str | None = None
    amount: float
    is_coin_denominated: bool
    category: str | None = None
    creator_id: str
    opponent_id: str
    group_id: str | None = None
    status: str
    winner_id: str | None = None
    third_party_verification: bool
    verifier_id: str | None = None
    is_public: bool
    end_date: datetime | None = None
    image_url: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime


class BetListResponse(BaseModel):
    bets: list[BetResponse]


class CommentResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    bet_id: str
    user_id: str
    text: str
    created_at: datetime


class EvidenceResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    bet_id: str
    user_id: str
    text: str | None = None
    image_url: str | None = None
    created_at: datetime


class BetDetailResponse(BaseModel):
    bet: BetResponse
    comments: list[CommentResponse]
    evidence: list[EvidenceResponse]
    can_resolve: bool = False
