"""Wager resolution: settling bets and challenges when a streak breaks.

``WagerResolver`` never commits and never takes locks. The caller owns the
transaction and must already hold the locks of every user whose XP changes
(the streak owner plus the counterparts of their active challenges).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.db.models import FriendChallenge, SoloBet, User
from streakbet.notifications.sink import NotificationSink
from streakbet.streaks.calendar import utcnow
from streakbet.users.service import get_user_for_update
from streakbet.wagers import states

logger = logging.getLogger(__name__)


@dataclass
class BreakSettlement:
    """Wagers settled by one streak break."""

    lost_bets: list[int] = field(default_factory=list)
    completed_challenges: list[int] = field(default_factory=list)
    winnings_paid: int = 0


class WagerResolver:
    """Applies wager outcomes inside the caller's transaction."""

    def __init__(self, db: AsyncSession, notifier: NotificationSink) -> None:
        self.db = db
        self.notifier = notifier

    # --- queries ---

    async def active_counterparts(self, user_id: int) -> list[int]:
        """Ids of the other participants in the user's active challenges."""
        result = await self.db.execute(
            select(FriendChallenge.challenger_id, FriendChallenge.opponent_id).where(
                FriendChallenge.challenge_status == states.ACTIVE,
                or_(FriendChallenge.challenger_id == user_id, FriendChallenge.opponent_id == user_id),
            )
        )
        partners: set[int] = set()
        for challenger_id, opponent_id in result:
            partners.add(opponent_id if challenger_id == user_id else challenger_id)
        return sorted(partners)

    async def _active_solo_bets(self, user_id: int) -> list[SoloBet]:
        result = await self.db.execute(
            select(SoloBet)
            .where(SoloBet.user_id == user_id, SoloBet.status == states.ACTIVE)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _active_challenges(self, user_id: int) -> list[FriendChallenge]:
        result = await self.db.execute(
            select(FriendChallenge)
            .where(
                FriendChallenge.challenge_status == states.ACTIVE,
                or_(FriendChallenge.challenger_id == user_id, FriendChallenge.opponent_id == user_id),
            )
            .order_by(FriendChallenge.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    # --- cascade ---

    async def settle_streak_break(self, loser: User) -> BreakSettlement:
        """Settle every open wager of a user whose streak just broke.

        Solo bets are lost (the stake was debited at creation). Active
        challenges are completed in favour of the counterpart.
        """
        summary = BreakSettlement()

        for bet in await self._active_solo_bets(loser.id):
            await self.apply_bet_outcome(bet, loser, states.LOST)
            summary.lost_bets.append(bet.id)

        for challenge in await self._active_challenges(loser.id):
            winnings = await self.settle_challenge(challenge, loser)
            summary.completed_challenges.append(challenge.id)
            summary.winnings_paid += winnings

        if summary.lost_bets or summary.completed_challenges:
            logger.info(
                "Streak break settled for user %s: %d bets lost, %d challenges forfeited",
                loser.id,
                len(summary.lost_bets),
                len(summary.completed_challenges),
            )
        return summary

    # --- single wager outcomes ---

    async def apply_bet_outcome(self, bet: SoloBet, owner: User, outcome: str) -> dict:
        """Move an active solo bet to won/lost and pay out when won."""
        states.validate_transition(bet.status, outcome)
        bet.status = outcome
        bet.resolved_at = utcnow()

        if outcome == states.WON:
            winnings = bet.amount * bet.multiplier
            owner.xp += winnings
            self.notifier.notify(
                owner.id,
                "bet_won",
                f"Bet won! You earned {winnings} XP (bet: {bet.amount} XP)",
                {"bet_id": bet.id, "winnings": winnings, "bet_amount": bet.amount},
            )
            return {"success": True, "outcome": states.WON, "winnings": winnings, "new_balance": owner.xp}

        self.notifier.notify(
            owner.id,
            "bet_lost",
            f"Bet lost! You lost {bet.amount} XP due to streak break.",
            {"bet_id": bet.id, "lost_amount": bet.amount},
        )
        return {"success": True, "outcome": outcome, "lost_amount": bet.amount, "new_balance": owner.xp}

    async def settle_challenge(self, challenge: FriendChallenge, loser: User) -> int:
        """Award the pot of an active challenge to the loser's counterpart.

        Returns the XP credited to the winner.
        """
        states.validate_challenge_transition(challenge.challenge_status, states.COMPLETED)
        winner_id = challenge.counterpart_of(loser.id)
        winner = await get_user_for_update(self.db, winner_id, label="Winner")

        winnings = challenge.amount * 2
        winner.xp += winnings

        challenge.challenge_status = states.COMPLETED
        challenge.status = states.WON
        challenge.winner_id = winner.id
        challenge.resolved_at = utcnow()

        self.notifier.notify(
            winner.id,
            "challenge_won",
            f"You won the challenge against {loser.username}! +{winnings} XP",
            {"challenge_id": challenge.id, "winnings": winnings, "opponent_name": loser.username},
        )
        self.notifier.notify(
            loser.id,
            "challenge_lost",
            f"You lost the challenge to {winner.username}. Streak broken!",
            {"challenge_id": challenge.id, "opponent_name": winner.username},
        )
        return winnings

    async def tie_challenge(self, challenge: FriendChallenge) -> None:
        """Both participants kept their streak to the end date: refund both stakes."""
        states.validate_challenge_transition(challenge.challenge_status, states.COMPLETED)
        challenger = await get_user_for_update(self.db, challenge.challenger_id, label="Challenger")
        opponent = await get_user_for_update(self.db, challenge.opponent_id, label="Opponent")

        challenger.xp += challenge.amount
        opponent.xp += challenge.amount
        challenge.challenge_status = states.COMPLETED
        challenge.status = states.TIED
        challenge.resolved_at = utcnow()

        for user, other in ((challenger, opponent), (opponent, challenger)):
            self.notifier.notify(
                user.id,
                "challenge_tied",
                f"Your challenge with {other.username} ended in a tie. {challenge.amount} XP refunded.",
                {"challenge_id": challenge.id, "refund": challenge.amount},
            )
