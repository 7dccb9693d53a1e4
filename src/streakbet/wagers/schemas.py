"""Pydantic models for solo bet and friend challenge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# --- Requests ---


class CreateBetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: int
    end_date: datetime = Field(..., alias="endDate")


class SendChallengeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    friend_id: int = Field(..., alias="friendId")
    amount: int
    end_date: datetime = Field(..., alias="endDate")


# --- Responses ---


class BetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bet_type: str
    user_id: int
    amount: int
    multiplier: int
    bet_start_date: datetime
    bet_end_date: datetime
    streak_at_bet: int
    status: str
    resolved_at: datetime | None = None


class ChallengeResponse(BetResponse):
    challenger_id: int | None = None
    opponent_id: int | None = None
    challenge_status: str | None = None
    accepted_at: datetime | None = None
    winner_id: int | None = None


class CreateBetResponse(BaseModel):
    success: bool
    message: str
    bet: BetResponse
    new_balance: int


class ActiveBetResponse(BaseModel):
    bet: BetResponse | None = None


class Pagination(BaseModel):
    total: int
    page: int
    pages: int


class BetStats(BaseModel):
    total_bets: int
    won: int
    lost: int
    win_rate: float
    total_won: int
    total_lost: int
    net_profit: int


class BetHistoryResponse(BaseModel):
    bets: list[BetResponse]
    pagination: Pagination
    stats: BetStats


class SendChallengeResponse(BaseModel):
    success: bool
    message: str
    challenge: ChallengeResponse


class AcceptChallengeResponse(BaseModel):
    success: bool
    message: str
    challenge: ChallengeResponse
    new_balance: int


class PendingChallengesResponse(BaseModel):
    incoming: list[ChallengeResponse]
    outgoing: list[ChallengeResponse]


class ActiveChallengesResponse(BaseModel):
    challenges: list[ChallengeResponse]
