"""Pydantic models for season, check-in and reward endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Seasons ---


class SeasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    start_date: date
    end_date: date
    is_active: bool


class SeasonCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str | None = None
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_window(self) -> SeasonCreateRequest:
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class SeasonUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


class SeasonUserEntry(BaseModel):
    id: int
    username: str
    streak: int
    last_login: datetime | None = None


# --- Check-in ---


class CheckInRequest(BaseModel):
    """Optional date override. Unparseable values fall back to now."""

    date: str | None = None
    lastLoginDate: str | None = None  # noqa: N815


class CheckInResponse(BaseModel):
    message: str
    streak: int
    xp_gained: int
    total_xp: int
    status: str


class SeasonStreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    season_id: int
    streak: int
    last_login_date: datetime | None = None


# --- Rewards ---


class RewardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    xp: int
    reason: str
    created_at: datetime | None = None


class RewardListResponse(BaseModel):
    rewards: list[RewardResponse]
    total_xp: int


class ClaimRewardResponse(BaseModel):
    success: bool
    message: str
    xp_gained: int
    remaining_rewards: int
    total_xp: int
