"""HTTP surface: auth, check-in, rewards, wagers, notifications, admin seasons."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from streakbet.streaks.rewards import Reward, enqueue_rewards
from tests.helpers import TEST_PASSWORD, auth_headers

pytestmark = pytest.mark.asyncio


def iso_in_days(n: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=n)).isoformat()


class TestAuth:
    async def test_register_then_me(self, client):
        resp = await client.post(
            "/api/v1/auth/register",
            json={"username": "alice", "email": "Alice@Example.com", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["xp"] == 0

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["username"] == "alice"
        assert me.json()["email"] == "alice@example.com"

    async def test_duplicate_email(self, client):
        payload = {"username": "bob", "email": "bob@example.com", "password": TEST_PASSWORD}
        await client.post("/api/v1/auth/register", json=payload)

        resp = await client.post("/api/v1/auth/register", json={**payload, "username": "bobby"})

        assert resp.status_code == 400
        assert resp.json() == {"detail": "Email already registered"}

    async def test_weak_password(self, client):
        resp = await client.post(
            "/api/v1/auth/register",
            json={"username": "carol", "email": "carol@example.com", "password": "short"},
        )
        assert resp.status_code == 400

    async def test_login_records_global_streak(self, client):
        await client.post(
            "/api/v1/auth/register",
            json={"username": "dave", "email": "dave@example.com", "password": TEST_PASSWORD},
        )

        first = await client.post(
            "/api/v1/auth/login",
            json={"email": "dave@example.com", "password": TEST_PASSWORD, "date": "2025-03-01T09:00:00Z"},
        )
        second = await client.post(
            "/api/v1/auth/login",
            json={"email": "dave@example.com", "password": TEST_PASSWORD, "date": "2025-03-02T09:00:00Z"},
        )

        assert first.json()["user"]["overall_streak"] == 1
        assert second.json()["user"]["overall_streak"] == 2

    async def test_wrong_password(self, client):
        await client.post(
            "/api/v1/auth/register",
            json={"username": "erin", "email": "erin@example.com", "password": TEST_PASSWORD},
        )
        resp = await client.post("/api/v1/auth/login", json={"email": "erin@example.com", "password": "Wrong1234"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid email or password"

    async def test_bad_token(self, client):
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestCheckIn:
    async def test_first_check_in(self, client, make_user, make_season):
        user = await make_user(xp=5)
        season = await make_season()

        resp = await client.post(f"/api/v1/seasons/{season.id}/checkin", headers=auth_headers(user))

        assert resp.status_code == 200
        assert resp.json() == {
            "message": "Checked in successfully.",
            "streak": 1,
            "xp_gained": 0,
            "total_xp": 5,
            "status": "checked_in",
        }

    async def test_date_override_in_body(self, client, make_user, make_season):
        user = await make_user()
        season = await make_season()
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).date().isoformat()
        today = datetime.now(timezone.utc).date().isoformat()

        await client.post(f"/api/v1/seasons/{season.id}/checkin", json={"date": yesterday}, headers=auth_headers(user))
        resp = await client.post(f"/api/v1/seasons/{season.id}/checkin", json={"date": today}, headers=auth_headers(user))

        assert resp.json()["streak"] == 2

    async def test_date_override_in_query(self, client, make_user, make_season):
        user = await make_user()
        season = await make_season()
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).date().isoformat()

        await client.post(
            f"/api/v1/seasons/{season.id}/checkin",
            params={"lastLoginDate": yesterday},
            headers=auth_headers(user),
        )
        resp = await client.post(f"/api/v1/seasons/{season.id}/checkin", headers=auth_headers(user))

        assert resp.json()["streak"] == 2

    async def test_unparseable_override_uses_now(self, client, make_user, make_season):
        user = await make_user()
        season = await make_season()

        resp = await client.post(
            f"/api/v1/seasons/{season.id}/checkin",
            json={"date": "not-a-date"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "checked_in"

    async def test_outside_window_is_conflict(self, client, make_user, make_season):
        user = await make_user()
        today = datetime.now(timezone.utc).date()
        season = await make_season(start=today + timedelta(days=3), end=today + timedelta(days=10))

        resp = await client.post(f"/api/v1/seasons/{season.id}/checkin", headers=auth_headers(user))

        assert resp.status_code == 409
        assert "detail" in resp.json()

    async def test_unknown_season(self, client, make_user):
        user = await make_user()
        resp = await client.post("/api/v1/seasons/9999/checkin", headers=auth_headers(user))
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Season not found"}

    async def test_requires_auth(self, client, make_season):
        season = await make_season()
        resp = await client.post(f"/api/v1/seasons/{season.id}/checkin")
        assert resp.status_code in (401, 403)

    async def test_my_season_streaks(self, client, make_user, make_season):
        user = await make_user()
        season = await make_season()
        await client.post(f"/api/v1/seasons/{season.id}/checkin", headers=auth_headers(user))

        resp = await client.get("/api/v1/seasons/streaks", headers=auth_headers(user))

        assert [(s["season_id"], s["streak"]) for s in resp.json()] == [(season.id, 1)]


class TestSeasonsPublic:
    async def test_active_lists_current_window_only(self, client, make_season):
        today = datetime.now(timezone.utc).date()
        current = await make_season(name="Now")
        await make_season(name="Later", start=today + timedelta(days=5), end=today + timedelta(days=9))
        await make_season(name="Off", is_active=False)

        resp = await client.get("/api/v1/seasons/active")

        assert [s["id"] for s in resp.json()] == [current.id]

    async def test_detail_missing(self, client, database):
        resp = await client.get("/api/v1/seasons/4040")
        assert resp.status_code == 404


class TestRewards:
    async def test_list_and_claim(self, client, db_session, make_user):
        user = await make_user(xp=0)
        enqueue_rewards(db_session, user.id, [Reward(30, "3 Day Season Streak"), Reward(50, "5 Day Season Streak")])
        await db_session.commit()

        listed = await client.get("/api/v1/rewards", headers=auth_headers(user))
        assert listed.json()["total_xp"] == 80
        assert [r["reason"] for r in listed.json()["rewards"]] == ["3 Day Season Streak", "5 Day Season Streak"]

        claimed = await client.post("/api/v1/rewards/claim", headers=auth_headers(user))
        assert claimed.status_code == 200
        assert claimed.json()["xp_gained"] == 30
        assert claimed.json()["remaining_rewards"] == 1
        assert claimed.json()["total_xp"] == 30

    async def test_claim_with_empty_queue(self, client, make_user):
        user = await make_user()
        resp = await client.post("/api/v1/rewards/claim", headers=auth_headers(user))
        assert resp.status_code == 400
        assert resp.json() == {"detail": "No rewards to claim"}


class TestBets:
    async def test_create_active_history(self, client, make_user):
        user = await make_user(xp=100)

        created = await client.post(
            "/api/v1/bets/create",
            json={"amount": 20, "endDate": iso_in_days(3)},
            headers=auth_headers(user),
        )
        assert created.status_code == 201
        assert created.json()["new_balance"] == 80
        assert created.json()["bet"]["status"] == "active"

        active = await client.get("/api/v1/bets/active", headers=auth_headers(user))
        assert active.json()["bet"]["id"] == created.json()["bet"]["id"]

        history = await client.get("/api/v1/bets/history", headers=auth_headers(user))
        assert history.json()["bets"] == []
        assert history.json()["stats"]["total_bets"] == 0

    async def test_over_limit_rejected(self, client, make_user):
        user = await make_user(xp=100)
        resp = await client.post(
            "/api/v1/bets/create",
            json={"amount": 80, "endDate": iso_in_days(3)},
            headers=auth_headers(user),
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Maximum bet is 50 XP (50% of your balance)"}

    async def test_second_active_bet_conflicts(self, client, make_user):
        user = await make_user(xp=100)
        payload = {"amount": 20, "endDate": iso_in_days(3)}
        await client.post("/api/v1/bets/create", json=payload, headers=auth_headers(user))

        resp = await client.post("/api/v1/bets/create", json=payload, headers=auth_headers(user))

        assert resp.status_code == 409

    async def test_missing_fields_is_422(self, client, make_user):
        user = await make_user(xp=100)
        resp = await client.post("/api/v1/bets/create", json={"amount": 20}, headers=auth_headers(user))
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Validation error"


class TestChallenges:
    async def test_full_flow(self, client, make_user):
        challenger = await make_user("rival_a", xp=200)
        opponent = await make_user("rival_b", xp=200)

        added = await client.post(f"/api/v1/friends/{opponent.id}", headers=auth_headers(challenger))
        assert added.status_code == 201
        friends = await client.get("/api/v1/friends", headers=auth_headers(opponent))
        assert [f["username"] for f in friends.json()["friends"]] == ["rival_a"]

        sent = await client.post(
            "/api/v1/bets/challenge",
            json={"friendId": opponent.id, "amount": 40, "endDate": iso_in_days(5)},
            headers=auth_headers(challenger),
        )
        assert sent.status_code == 201
        assert sent.json()["message"] == "Challenge sent to rival_b!"
        challenge_id = sent.json()["challenge"]["id"]

        pending = await client.get("/api/v1/bets/challenges/pending", headers=auth_headers(opponent))
        assert [c["id"] for c in pending.json()["incoming"]] == [challenge_id]

        forbidden = await client.post(f"/api/v1/bets/accept/{challenge_id}", headers=auth_headers(challenger))
        assert forbidden.status_code == 403

        accepted = await client.post(f"/api/v1/bets/accept/{challenge_id}", headers=auth_headers(opponent))
        assert accepted.status_code == 200
        assert accepted.json()["new_balance"] == 160
        assert accepted.json()["challenge"]["challenge_status"] == "active"

        active = await client.get("/api/v1/bets/challenges/active", headers=auth_headers(challenger))
        assert [c["id"] for c in active.json()["challenges"]] == [challenge_id]

        again = await client.post(f"/api/v1/bets/decline/{challenge_id}", headers=auth_headers(opponent))
        assert again.status_code == 409

    async def test_strangers_cannot_challenge(self, client, make_user):
        a = await make_user(xp=200)
        b = await make_user(xp=200)
        resp = await client.post(
            "/api/v1/bets/challenge",
            json={"friendId": b.id, "amount": 40, "endDate": iso_in_days(5)},
            headers=auth_headers(a),
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "You can only challenge friends"}


class TestNotifications:
    async def test_list_count_and_mark_read(self, client, make_user, befriend):
        challenger = await make_user(xp=200)
        opponent = await make_user(xp=200)
        await befriend(challenger.id, opponent.id)
        await client.post(
            "/api/v1/bets/challenge",
            json={"friendId": opponent.id, "amount": 40, "endDate": iso_in_days(5)},
            headers=auth_headers(challenger),
        )

        count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(opponent))
        assert count.json() == {"unread_count": 1}

        listed = await client.get("/api/v1/notifications", headers=auth_headers(opponent))
        (note,) = listed.json()["notifications"]
        assert note["subtype"] == "challenge_received"
        assert note["read"] is False

        marked = await client.post(f"/api/v1/notifications/{note['id']}/read", headers=auth_headers(opponent))
        assert marked.status_code == 200
        count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(opponent))
        assert count.json() == {"unread_count": 0}

    async def test_cannot_mark_someone_elses(self, client, make_user, befriend):
        challenger = await make_user(xp=200)
        opponent = await make_user(xp=200)
        await befriend(challenger.id, opponent.id)
        await client.post(
            "/api/v1/bets/challenge",
            json={"friendId": opponent.id, "amount": 40, "endDate": iso_in_days(5)},
            headers=auth_headers(challenger),
        )
        listed = await client.get("/api/v1/notifications", headers=auth_headers(opponent))
        note_id = listed.json()["notifications"][0]["id"]

        resp = await client.post(f"/api/v1/notifications/{note_id}/read", headers=auth_headers(challenger))

        assert resp.status_code == 404


class TestAdminSeasons:
    async def test_non_admin_forbidden(self, client, make_user):
        user = await make_user()
        resp = await client.get("/api/v1/admin/seasons", headers=auth_headers(user))
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Admin access required"}

    async def test_create_update_delete(self, client, make_user):
        admin = await make_user(role="admin")
        today = datetime.now(timezone.utc).date()

        created = await client.post(
            "/api/v1/admin/seasons",
            json={
                "name": "Autumn",
                "start_date": today.isoformat(),
                "end_date": (today + timedelta(days=30)).isoformat(),
            },
            headers=auth_headers(admin),
        )
        assert created.status_code == 201
        season_id = created.json()["id"]

        updated = await client.put(
            f"/api/v1/admin/seasons/{season_id}",
            json={"is_active": False},
            headers=auth_headers(admin),
        )
        assert updated.json()["is_active"] is False
        assert updated.json()["name"] == "Autumn"

        listed = await client.get("/api/v1/admin/seasons", headers=auth_headers(admin))
        assert [s["id"] for s in listed.json()] == [season_id]

        deleted = await client.delete(f"/api/v1/admin/seasons/{season_id}", headers=auth_headers(admin))
        assert deleted.status_code == 200
        assert (await client.get(f"/api/v1/seasons/{season_id}")).status_code == 404

    async def test_inverted_window_rejected(self, client, make_user):
        admin = await make_user(role="admin")
        resp = await client.post(
            "/api/v1/admin/seasons",
            json={"name": "Backwards", "start_date": "2025-05-10", "end_date": "2025-05-01"},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 422

    async def test_season_users_ranked(self, client, make_user, make_season):
        admin = await make_user(role="admin")
        player = await make_user()
        season = await make_season()
        await client.post(f"/api/v1/seasons/{season.id}/checkin", headers=auth_headers(player))

        resp = await client.get(f"/api/v1/seasons/{season.id}/users", headers=auth_headers(admin))

        assert [(u["id"], u["streak"]) for u in resp.json()] == [(player.id, 1)]
