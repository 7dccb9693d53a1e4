"""Scheduled jobs: matured wager settlement and streak reminders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from streakbet.db.models import FriendChallenge, Notification, SoloBet, User
from streakbet.wagers import states
from streakbet.wagers.worker import send_reminders, settle_matured

pytestmark = pytest.mark.asyncio


def in_days(n: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=n)


async def fresh(db, model, ident):
    result = await db.execute(
        select(model).where(model.id == ident).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def subtypes_for(db, user_id: int) -> list[str]:
    result = await db.execute(
        select(Notification.subtype).where(Notification.user_id == user_id).order_by(Notification.id)
    )
    return list(result.scalars().all())


class TestSettleMatured:
    async def test_surviving_solo_bet_is_won(self, engines, make_user):
        user = await make_user(xp=100, last_login_date=in_days(1))
        user_id = user.id
        bet = (await engines.bets.create_solo_bet(user_id, 40, in_days(2)))["bet"]

        counts = await settle_matured(engines.db, engines.locks, now=in_days(4))

        assert counts["bets_won"] == 1
        assert counts["bets_lost"] == 0
        assert (await fresh(engines.db, SoloBet, bet.id)).status == states.WON
        assert (await fresh(engines.db, User, user_id)).xp == 60 + 80

    async def test_lapsed_solo_bet_is_lost(self, engines, make_user, make_season):
        user = await make_user(xp=100)
        user_id = user.id
        season = await make_season()
        await engines.checkin.check_in(user_id, season.id, datetime.now(timezone.utc))
        bet = (await engines.bets.create_solo_bet(user_id, 50, in_days(2)))["bet"]

        counts = await settle_matured(engines.db, engines.locks, now=in_days(10))

        assert counts["bets_won"] == 0
        assert counts["bets_lost"] == 1
        settled = await fresh(engines.db, SoloBet, bet.id)
        assert settled.status == states.LOST
        assert settled.resolved_at is not None
        assert (await fresh(engines.db, User, user_id)).xp == 50
        assert await subtypes_for(engines.db, user_id) == ["bet_lost"]

    async def test_bet_ending_today_stays_open(self, engines, make_user):
        user = await make_user(xp=100)
        bet = (await engines.bets.create_solo_bet(user.id, 40, in_days(2)))["bet"]

        counts = await settle_matured(engines.db, engines.locks, now=in_days(2))

        assert counts["bets_won"] == counts["bets_lost"] == 0
        assert (await fresh(engines.db, SoloBet, bet.id)).status == states.ACTIVE

    async def test_active_challenge_ties_and_refunds(self, engines, make_user, befriend):
        a = await make_user(xp=200, last_login_date=in_days(2))
        b = await make_user(xp=200, last_login_date=in_days(1))
        a_id, b_id = a.id, b.id
        await befriend(a_id, b_id)
        sent = await engines.challenges.send_challenge(a_id, b_id, 50, in_days(2))
        challenge_id = sent["challenge"].id
        await engines.challenges.accept_challenge(challenge_id, b_id)

        counts = await settle_matured(engines.db, engines.locks, now=in_days(5))

        assert counts["challenges_tied"] == 1
        assert counts["challenges_settled"] == 0
        challenge = await fresh(engines.db, FriendChallenge, challenge_id)
        assert challenge.challenge_status == states.COMPLETED
        assert challenge.status == states.TIED
        assert challenge.winner_id is None
        assert (await fresh(engines.db, User, a_id)).xp == 200
        assert (await fresh(engines.db, User, b_id)).xp == 200

    async def test_lapsed_challenger_forfeits_the_pot(self, engines, make_user, befriend):
        quitter = await make_user(xp=200, last_login_date=datetime.now(timezone.utc))
        keeper = await make_user(xp=200, last_login_date=in_days(2))
        quitter_id, keeper_id = quitter.id, keeper.id
        await befriend(quitter_id, keeper_id)
        sent = await engines.challenges.send_challenge(quitter_id, keeper_id, 50, in_days(2))
        challenge_id = sent["challenge"].id
        await engines.challenges.accept_challenge(challenge_id, keeper_id)

        counts = await settle_matured(engines.db, engines.locks, now=in_days(10))

        assert counts["challenges_settled"] == 1
        assert counts["challenges_tied"] == 0
        challenge = await fresh(engines.db, FriendChallenge, challenge_id)
        assert challenge.challenge_status == states.COMPLETED
        assert challenge.status == states.WON
        assert challenge.winner_id == keeper_id
        assert (await fresh(engines.db, User, quitter_id)).xp == 150
        assert (await fresh(engines.db, User, keeper_id)).xp == 150 + 100
        assert "challenge_lost" in await subtypes_for(engines.db, quitter_id)
        assert "challenge_won" in await subtypes_for(engines.db, keeper_id)

    async def test_both_lapsed_first_to_stop_loses(self, engines, make_user, befriend):
        early = await make_user(xp=200, last_login_date=datetime.now(timezone.utc))
        late = await make_user(xp=200, last_login_date=in_days(1))
        early_id, late_id = early.id, late.id
        await befriend(late_id, early_id)
        sent = await engines.challenges.send_challenge(late_id, early_id, 50, in_days(5))
        challenge_id = sent["challenge"].id
        await engines.challenges.accept_challenge(challenge_id, early_id)

        counts = await settle_matured(engines.db, engines.locks, now=in_days(8))

        assert counts["challenges_settled"] == 1
        challenge = await fresh(engines.db, FriendChallenge, challenge_id)
        assert challenge.winner_id == late_id
        assert (await fresh(engines.db, User, early_id)).xp == 150
        assert (await fresh(engines.db, User, late_id)).xp == 250

    async def test_unanswered_challenge_expires(self, engines, make_user, befriend):
        a = await make_user(xp=200)
        b = await make_user(xp=200)
        a_id = a.id
        await befriend(a_id, b.id)
        sent = await engines.challenges.send_challenge(a_id, b.id, 50, in_days(2))
        challenge_id = sent["challenge"].id

        counts = await settle_matured(engines.db, engines.locks, now=in_days(5))

        assert counts["challenges_expired"] == 1
        challenge = await fresh(engines.db, FriendChallenge, challenge_id)
        assert challenge.challenge_status == states.DECLINED
        assert (await fresh(engines.db, User, a_id)).xp == 200
        assert "challenge_expired" in await subtypes_for(engines.db, a_id)

    async def test_idempotent(self, engines, make_user):
        user = await make_user(xp=100, last_login_date=in_days(1))
        user_id = user.id
        await engines.bets.create_solo_bet(user_id, 40, in_days(2))

        await settle_matured(engines.db, engines.locks, now=in_days(4))
        second = await settle_matured(engines.db, engines.locks, now=in_days(4))

        assert second == {
            "bets_won": 0,
            "bets_lost": 0,
            "challenges_settled": 0,
            "challenges_tied": 0,
            "challenges_expired": 0,
        }
        assert (await fresh(engines.db, User, user_id)).xp == 140


class TestStreakReminders:
    async def test_only_running_streaks_missing_today(self, db_session, make_user):
        today = datetime.now(timezone.utc)
        due = await make_user(overall_streak=4, last_login_date=today - timedelta(days=1))
        await make_user(overall_streak=4, last_login_date=today)
        await make_user(overall_streak=0, last_login_date=today - timedelta(days=3))
        await make_user(overall_streak=6, last_login_date=today - timedelta(days=1), role="admin")

        sent = await send_reminders(db_session, now=today)

        assert sent == 1
        rows = (await db_session.execute(select(Notification))).scalars().all()
        assert [(n.user_id, n.subtype) for n in rows] == [(due.id, "streak_reminder")]
        assert rows[0].notification_metadata == {"current_streak": 4}
