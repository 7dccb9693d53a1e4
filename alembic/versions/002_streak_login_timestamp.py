"""Login-only timestamp for the global streak.

``last_login_date`` is daily activity and check-ins move it too. The overall
streak is measured against ``last_streak_login_at``, which only logins set.
Existing rows start from their current ``last_login_date``.

Revision ID: 002_streak_login_timestamp
Revises: 001_initial_schema
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_streak_login_timestamp"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("ALTER TABLE users ADD COLUMN IF NOT EXISTS last_streak_login_at TIMESTAMPTZ")
    op.execute("UPDATE users SET last_streak_login_at = last_login_date WHERE last_streak_login_at IS NULL")


def downgrade() -> None:
    op.execute("ALTER TABLE users DROP COLUMN IF EXISTS last_streak_login_at")
