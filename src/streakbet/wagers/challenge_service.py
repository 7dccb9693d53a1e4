"""Friend challenges: two-party streak wagers.

Lifecycle: pending -> active (accepted, both stakes debited) -> completed,
or pending -> declined. No XP moves when a challenge is sent or declined.
"""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.config import Settings, get_settings
from streakbet.db.models import FriendChallenge
from streakbet.errors import ForbiddenError, InvalidStateError, NotFoundError, RuleViolationError
from streakbet.notifications.sink import NotificationSink
from streakbet.streaks.calendar import utcnow
from streakbet.streaks.locks import UserLockRegistry
from streakbet.users.service import are_friends, get_user_by_id, get_user_for_update
from streakbet.wagers import states
from streakbet.wagers.resolution import WagerResolver
from streakbet.wagers.validation import validate_amount, validate_end_date, validate_solvency

logger = structlog.get_logger()


class ChallengeService:
    """Friend challenge operations. Each public mutation is its own transaction."""

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

    async def send_challenge(
        self, challenger_id: int, friend_id: int | None, amount: int, end_date: datetime | None
    ) -> dict:
        """Create a pending challenge. Stakes are only taken on acceptance."""
        if not friend_id or not amount:
            raise RuleViolationError("Friend ID and amount are required")
        if end_date is None:
            raise RuleViolationError("End date is required")
        amount = validate_amount(amount, self.settings)
        end_date = validate_end_date(end_date, self.settings, kind="challenge")

        try:
            challenger = await get_user_by_id(self.db, challenger_id)
            if challenger is None:
                raise NotFoundError("Challenger not found")
            opponent = await get_user_by_id(self.db, friend_id)
            if opponent is None:
                raise NotFoundError("Friend not found")
            if not await are_friends(self.db, challenger_id, friend_id):
                raise RuleViolationError("You can only challenge friends")
            validate_solvency(amount, challenger.xp, self.settings)

            challenge = FriendChallenge(
                user_id=challenger_id,
                challenger_id=challenger_id,
                opponent_id=friend_id,
                challenge_status=states.PENDING,
                status=states.ACTIVE,
                amount=amount,
                multiplier=self.settings.bet_multiplier,
                bet_start_date=utcnow(),
                bet_end_date=end_date,
                streak_at_bet=challenger.overall_streak or 0,
            )
            self.db.add(challenge)
            await self.db.flush()
            self.notifier.notify(
                friend_id,
                "challenge_received",
                f"{challenger.username} challenged you to a {amount} XP streak battle!",
                {"challenge_id": challenge.id, "amount": amount, "challenger_name": challenger.username},
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.notifier.discard()
            raise

        await self.notifier.deliver()
        logger.info("challenge_sent", challenge_id=challenge.id, challenger_id=challenger_id, opponent_id=friend_id)
        return {"success": True, "challenge": challenge, "message": f"Challenge sent to {opponent.username}!"}

    async def _load_for_opponent(self, challenge_id: int, opponent_id: int) -> FriendChallenge:
        result = await self.db.execute(
            select(FriendChallenge)
            .where(FriendChallenge.id == challenge_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        challenge = result.scalar_one_or_none()
        if challenge is None:
            raise NotFoundError("Challenge not found")
        if challenge.opponent_id != opponent_id:
            raise ForbiddenError("Not your challenge")
        if challenge.challenge_status != states.PENDING:
            raise InvalidStateError("Challenge already processed")
        return challenge

    async def _challenger_of(self, challenge_id: int) -> int:
        result = await self.db.execute(
            select(FriendChallenge.challenger_id).where(FriendChallenge.id == challenge_id)
        )
        challenger_id = result.scalar_one_or_none()
        if challenger_id is None:
            raise NotFoundError("Challenge not found")
        return challenger_id

    async def accept_challenge(self, challenge_id: int, opponent_id: int) -> dict:
        """Debit both stakes and start the challenge."""
        challenger_id = await self._challenger_of(challenge_id)

        async with self.locks.hold(challenger_id, opponent_id):
            try:
                challenge = await self._load_for_opponent(challenge_id, opponent_id)
                opponent = await get_user_for_update(self.db, opponent_id, label="Opponent")
                challenger = await get_user_for_update(self.db, challenger_id, label="Challenger")

                if opponent.xp < challenge.amount:
                    raise RuleViolationError("Insufficient XP to accept challenge")
                if challenger.xp < challenge.amount:
                    raise RuleViolationError("Challenger no longer has sufficient XP")

                states.validate_challenge_transition(challenge.challenge_status, states.ACTIVE)
                opponent.xp -= challenge.amount
                challenger.xp -= challenge.amount
                challenge.challenge_status = states.ACTIVE
                challenge.status = states.ACTIVE
                challenge.accepted_at = utcnow()

                self.notifier.notify(
                    challenger_id,
                    "challenge_accepted",
                    f"{opponent.username} accepted your {challenge.amount} XP challenge! Game on!",
                    {"challenge_id": challenge.id, "amount": challenge.amount},
                )
                new_balance = opponent.xp
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                self.notifier.discard()
                raise

        await self.notifier.deliver()
        logger.info("challenge_accepted", challenge_id=challenge_id, opponent_id=opponent_id)
        return {"success": True, "challenge": challenge, "new_balance": new_balance, "message": "Challenge accepted!"}

    async def decline_challenge(self, challenge_id: int, opponent_id: int) -> dict:
        """Decline a pending challenge. No stakes were taken, so none are returned."""
        challenger_id = await self._challenger_of(challenge_id)

        async with self.locks.hold(challenger_id, opponent_id):
            try:
                challenge = await self._load_for_opponent(challenge_id, opponent_id)
                opponent = await get_user_by_id(self.db, opponent_id)

                states.validate_challenge_transition(challenge.challenge_status, states.DECLINED)
                challenge.challenge_status = states.DECLINED
                challenge.status = states.LOST
                challenge.resolved_at = utcnow()

                self.notifier.notify(
                    challenger_id,
                    "challenge_declined",
                    f"{opponent.username if opponent else 'Your friend'} declined your challenge.",
                    {"challenge_id": challenge.id},
                )
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                self.notifier.discard()
                raise

        await self.notifier.deliver()
        logger.info("challenge_declined", challenge_id=challenge_id, opponent_id=opponent_id)
        return {"success": True, "message": "Challenge declined"}

    async def resolve_friend_challenge(self, challenge_id: int, loser_id: int) -> dict:
        """Award an active challenge to the participant who is not ``loser_id``."""
        challenge = await self.db.get(FriendChallenge, challenge_id)
        if challenge is None:
            return {"success": False, "message": "Challenge not active"}
        participants = (challenge.challenger_id, challenge.opponent_id)
        if loser_id not in participants:
            return {"success": False, "message": "User is not part of this challenge"}

        async with self.locks.hold(*participants):
            try:
                result = await self.db.execute(
                    select(FriendChallenge)
                    .where(FriendChallenge.id == challenge_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                challenge = result.scalar_one()
                if challenge.challenge_status != states.ACTIVE:
                    await self.db.rollback()
                    return {"success": False, "message": "Challenge not active"}

                loser = await get_user_for_update(self.db, loser_id, label="Loser")
                winnings = await self.resolver.settle_challenge(challenge, loser)
                winner_id = challenge.winner_id
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                self.notifier.discard()
                raise

        await self.notifier.deliver()
        return {"success": True, "winner_id": winner_id, "winnings": winnings}

    async def get_pending_challenges(self, user_id: int) -> dict:
        incoming = await self.db.execute(
            select(FriendChallenge)
            .where(FriendChallenge.opponent_id == user_id, FriendChallenge.challenge_status == states.PENDING)
            .order_by(FriendChallenge.id.desc())
        )
        outgoing = await self.db.execute(
            select(FriendChallenge)
            .where(FriendChallenge.challenger_id == user_id, FriendChallenge.challenge_status == states.PENDING)
            .order_by(FriendChallenge.id.desc())
        )
        return {"incoming": list(incoming.scalars().all()), "outgoing": list(outgoing.scalars().all())}

    async def get_active_challenges(self, user_id: int) -> list[FriendChallenge]:
        result = await self.db.execute(
            select(FriendChallenge)
            .where(
                FriendChallenge.challenge_status == states.ACTIVE,
                or_(FriendChallenge.challenger_id == user_id, FriendChallenge.opponent_id == user_id),
            )
            .order_by(FriendChallenge.id.desc())
        )
        return list(result.scalars().all())
