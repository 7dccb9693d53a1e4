"""Stake validation shared by solo bets and friend challenges."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from streakbet.config import Settings
from streakbet.errors import RuleViolationError
from streakbet.streaks.calendar import as_utc, utcnow


def validate_amount(amount: int | None, settings: Settings) -> int:
    if not amount or amount < settings.min_bet_amount:
        raise RuleViolationError(f"Minimum bet is {settings.min_bet_amount} XP")
    return amount


def validate_end_date(
    end_date: datetime | None,
    settings: Settings,
    kind: str = "bet",
    now: datetime | None = None,
) -> datetime:
    """End date must be strictly in the future and within the maximum duration."""
    if end_date is None:
        raise RuleViolationError("End date is required")
    now = now or utcnow()
    end_date = as_utc(end_date)
    if end_date <= now:
        raise RuleViolationError("End date must be in the future")
    if end_date > now + timedelta(days=settings.max_bet_days):
        raise RuleViolationError(f"Maximum {kind} duration is {settings.max_bet_days} days")
    return end_date


def max_stake(balance: int, settings: Settings) -> int:
    return math.floor(balance * settings.max_bet_fraction)


def validate_solvency(amount: int, balance: int, settings: Settings) -> None:
    """Stake may not exceed the balance nor the allowed fraction of it."""
    if balance < amount:
        raise RuleViolationError("Insufficient XP balance")
    cap = max_stake(balance, settings)
    if amount > cap:
        pct = round(settings.max_bet_fraction * 100)
        raise RuleViolationError(f"Maximum bet is {cap} XP ({pct}% of your balance)")
