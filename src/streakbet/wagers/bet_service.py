"""Solo bets: placing, resolving and reporting."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.config import Settings, get_settings
from streakbet.db.models import SoloBet
from streakbet.errors import InvalidStateError
from streakbet.notifications.sink import NotificationSink
from streakbet.streaks.calendar import days_until, utcnow
from streakbet.streaks.locks import UserLockRegistry
from streakbet.users.service import get_user_for_update
from streakbet.wagers import states
from streakbet.wagers.resolution import WagerResolver
from streakbet.wagers.validation import validate_amount, validate_end_date, validate_solvency

logger = structlog.get_logger()


class BetService:
    """Solo bet operations. Each public mutation is its own transaction."""

    def __init__(
        self,
        db: AsyncSession,
        resolver: WagerResolver,
        notifier: NotificationSink,
        locks: UserLockRegistry,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.resolver = resolver
        self.notifier = notifier
        self.locks = locks
        self.settings = settings or get_settings()

    async def create_solo_bet(self, user_id: int, amount: int, end_date: datetime | None) -> dict:
        """Debit ``amount`` and open a bet on the user's streak lasting until ``end_date``.

        Raises:
            RuleViolationError: amount/date out of bounds or insufficient XP.
            NotFoundError: unknown user.
            InvalidStateError: the user already has an active solo bet.
        """
        amount = validate_amount(amount, self.settings)
        end_date = validate_end_date(end_date, self.settings, kind="bet")

        async with self.locks.hold(user_id):
            try:
                user = await get_user_for_update(self.db, user_id)
                validate_solvency(amount, user.xp, self.settings)

                if await self.get_active_bet(user_id) is not None:
                    raise InvalidStateError("You already have an active bet")

                user.xp -= amount
                bet = SoloBet(
                    user_id=user_id,
                    amount=amount,
                    multiplier=self.settings.bet_multiplier,
                    bet_start_date=utcnow(),
                    bet_end_date=end_date,
                    streak_at_bet=user.overall_streak or 0,
                    status=states.ACTIVE,
                )
                self.db.add(bet)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        days = days_until(end_date)
        logger.info("bet_created", user_id=user_id, bet_id=bet.id, amount=amount, days=days)
        return {
            "success": True,
            "bet": bet,
            "new_balance": user.xp,
            "message": (
                f"Bet placed for {days} days! Maintain your streak until "
                f"{end_date.date().isoformat()} to win {amount * bet.multiplier} XP"
            ),
        }

    async def resolve_bet(self, bet_id: int, outcome: str) -> dict:
        """Settle an active solo bet as won or lost.

        A bet that is missing or already resolved is reported as
        ``{"success": False}`` rather than raised, so repeated calls are harmless.
        """
        if outcome not in (states.WON, states.LOST):
            return {"success": False, "message": f"Unsupported outcome: {outcome}"}

        bet = await self.db.get(SoloBet, bet_id)
        if bet is None:
            return {"success": False, "message": "Bet not found or already resolved"}
        owner_id = bet.user_id

        async with self.locks.hold(owner_id):
            try:
                result = await self.db.execute(
                    select(SoloBet)
                    .where(SoloBet.id == bet_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                bet = result.scalar_one_or_none()
                if bet is None or bet.status != states.ACTIVE:
                    await self.db.rollback()
                    return {"success": False, "message": "Bet not found or already resolved"}

                owner = await get_user_for_update(self.db, owner_id)
                outcome_info = await self.resolver.apply_bet_outcome(bet, owner, outcome)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                self.notifier.discard()
                raise

        await self.notifier.deliver()
        logger.info("bet_resolved", bet_id=bet_id, outcome=outcome)
        return outcome_info

    async def get_active_bet(self, user_id: int) -> SoloBet | None:
        result = await self.db.execute(
            select(SoloBet)
            .where(SoloBet.user_id == user_id, SoloBet.status == states.ACTIVE)
            .order_by(SoloBet.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_bet_history(self, user_id: int, page: int = 1, limit: int = 10) -> dict:
        """Resolved solo bets, newest first, with win/loss statistics."""
        resolved = (SoloBet.user_id == user_id, SoloBet.status.in_([states.WON, states.LOST]))

        total = (await self.db.execute(select(func.count()).select_from(SoloBet).where(*resolved))).scalar_one()
        result = await self.db.execute(
            select(SoloBet)
            .where(*resolved)
            .order_by(SoloBet.resolved_at.desc(), SoloBet.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        bets = list(result.scalars().all())

        won_row = (
            await self.db.execute(
                select(func.count(), func.coalesce(func.sum(SoloBet.amount * SoloBet.multiplier), 0)).where(
                    SoloBet.user_id == user_id, SoloBet.status == states.WON
                )
            )
        ).one()
        lost_row = (
            await self.db.execute(
                select(func.count(), func.coalesce(func.sum(SoloBet.amount), 0)).where(
                    SoloBet.user_id == user_id, SoloBet.status == states.LOST
                )
            )
        ).one()
        won, total_won = int(won_row[0]), int(won_row[1])
        lost, total_lost = int(lost_row[0]), int(lost_row[1])
        settled = won + lost

        return {
            "bets": bets,
            "pagination": {
                "total": total,
                "page": page,
                "pages": -(-total // limit) if limit else 0,
            },
            "stats": {
                "total_bets": settled,
                "won": won,
                "lost": lost,
                "win_rate": round(won / settled * 100, 1) if settled else 0.0,
                "total_won": total_won,
                "total_lost": total_lost,
                "net_profit": total_won - total_lost,
            },
        }
