"""Initial schema: users, seasons, streaks, rewards, friendships, wagers, notifications.

Wagers are a single table; ``bet_type`` selects solo bets or friend challenges,
and the challenge columns stay NULL for solo bets.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            password_hash VARCHAR(256),
            role VARCHAR(16) NOT NULL DEFAULT 'user',
            overall_streak INTEGER NOT NULL DEFAULT 0,
            last_login_date TIMESTAMPTZ,
            xp BIGINT NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Seasons ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS seasons (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            start_date DATE NOT NULL,
            end_date DATE NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_seasons_window CHECK (end_date >= start_date)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS season_streaks (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            season_id BIGINT NOT NULL REFERENCES seasons(id) ON DELETE CASCADE,
            streak INTEGER NOT NULL DEFAULT 0,
            last_login_date TIMESTAMPTZ,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT season_streaks_user_id_season_id_key UNIQUE (user_id, season_id)
        )
    """)

    # --- Rewards ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS unclaimed_rewards (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            xp INTEGER NOT NULL,
            reason VARCHAR(128) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_unclaimed_rewards_user ON unclaimed_rewards(user_id, id)")

    # --- Friendships ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            friend_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, friend_id)
        )
    """)

    # --- Wagers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS wagers (
            id BIGSERIAL PRIMARY KEY,
            bet_type VARCHAR(32) NOT NULL,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            multiplier INTEGER NOT NULL DEFAULT 2,
            bet_start_date TIMESTAMPTZ NOT NULL,
            bet_end_date TIMESTAMPTZ NOT NULL,
            streak_at_bet INTEGER NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            resolved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            challenger_id BIGINT REFERENCES users(id) ON DELETE CASCADE,
            opponent_id BIGINT REFERENCES users(id) ON DELETE CASCADE,
            challenge_status VARCHAR(16),
            accepted_at TIMESTAMPTZ,
            winner_id BIGINT REFERENCES users(id) ON DELETE SET NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_wagers_user_status ON wagers(user_id, status)")
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_wagers_opponent_challenge ON wagers(opponent_id, challenge_status)"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_wagers_challenger_challenge ON wagers(challenger_id, challenge_status)"
    )

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            subtype VARCHAR(64) NOT NULL,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            read BOOLEAN NOT NULL DEFAULT false,
            metadata JSONB DEFAULT '{}',
            created_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_notifications_user_read ON notifications(user_id, read)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE")
    op.execute("DROP TABLE IF EXISTS wagers CASCADE")
    op.execute("DROP TABLE IF EXISTS friendships CASCADE")
    op.execute("DROP TABLE IF EXISTS unclaimed_rewards CASCADE")
    op.execute("DROP TABLE IF EXISTS season_streaks CASCADE")
    op.execute("DROP TABLE IF EXISTS seasons CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
