"""Streak milestone rewards and the unclaimed-reward queue.

Milestones are queued, never credited directly; ``claim_reward`` drains the
queue oldest-first. The season rules overlap on purpose and are not
deduplicated: the 3-day rule fires on every multiple of 3 regardless of the
5-day and 10-day rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.db.models import UnclaimedReward
from streakbet.errors import RuleViolationError
from streakbet.streaks.calendar import utcnow
from streakbet.streaks.locks import UserLockRegistry
from streakbet.users.service import get_user_for_update

logger = structlog.get_logger()


@dataclass(frozen=True)
class Reward:
    xp: int
    reason: str


FIVE_DAY_SEASON = Reward(50, "5 Day Season Streak")
TEN_DAY_SEASON = Reward(100, "10 Day Season Streak")
THREE_DAY_SEASON = Reward(30, "3 Day Season Streak")

FIVE_DAY_GLOBAL = Reward(50, "5 Day Global Streak")
TEN_DAY_GLOBAL = Reward(100, "10 Day Global Streak")


def season_streak_rewards(streak: int) -> list[Reward]:
    """Rewards earned by reaching ``streak`` on a season."""
    rewards: list[Reward] = []
    if streak == 5:
        rewards.append(FIVE_DAY_SEASON)
    if streak == 10:
        rewards.append(TEN_DAY_SEASON)
    if streak > 0 and streak % 3 == 0:
        rewards.append(THREE_DAY_SEASON)
    return rewards


def global_streak_rewards(streak: int) -> list[Reward]:
    """Rewards earned by reaching ``streak`` days of consecutive logins."""
    if streak > 0 and streak % 10 == 0:
        return [TEN_DAY_GLOBAL]
    if streak > 0 and streak % 5 == 0:
        return [FIVE_DAY_GLOBAL]
    return []


def enqueue_rewards(db: AsyncSession, user_id: int, rewards: list[Reward], when: datetime | None = None) -> None:
    when = when or utcnow()
    for reward in rewards:
        db.add(UnclaimedReward(user_id=user_id, xp=reward.xp, reason=reward.reason, created_at=when))


async def list_unclaimed(db: AsyncSession, user_id: int) -> list[UnclaimedReward]:
    result = await db.execute(
        select(UnclaimedReward).where(UnclaimedReward.user_id == user_id).order_by(UnclaimedReward.id)
    )
    return list(result.scalars().all())


async def claim_reward(db: AsyncSession, locks: UserLockRegistry, user_id: int) -> dict:
    """Credit the oldest unclaimed reward to the user's XP balance."""
    async with locks.hold(user_id):
        try:
            user = await get_user_for_update(db, user_id)
            queue = await list_unclaimed(db, user_id)
            if not queue:
                raise RuleViolationError("No rewards to claim")

            reward = queue[0]
            user.xp += reward.xp
            await db.delete(reward)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("reward_claimed", user_id=user_id, xp=reward.xp, reason=reward.reason)
    return {
        "success": True,
        "message": f"Claimed {reward.xp} XP for {reward.reason}",
        "xp_gained": reward.xp,
        "remaining_rewards": len(queue) - 1,
        "total_xp": user.xp,
    }
