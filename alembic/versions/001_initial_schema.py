"""Initial schema: users, friendships, groups, bets, achievements, ledger.

Revision ID: 001_initial_schema
Revises:
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
            id VARCHAR(36) PRIMARY KEY,
            username VARCHAR(32) NOT NULL,
            username_normalized VARCHAR(32) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            full_name VARCHAR(128),
            avatar_url TEXT,
            bet_coins INTEGER NOT NULL DEFAULT 0,
            balance NUMERIC(12, 2) NOT NULL DEFAULT 0,
            win_rate DOUBLE PRECISION NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_bet_coins_non_negative CHECK (bet_coins >= 0),
            CONSTRAINT ck_users_balance_non_negative CHECK (balance >= 0)
        )
    """)

    # --- Friendships (one row per unordered pair) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            friend_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            pair_low VARCHAR(36) NOT NULL,
            pair_high VARCHAR(36) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_friendships_pair UNIQUE (pair_low, pair_high)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_friendships_friend_status
        ON friendships(friend_id, status)
    """)

    # --- Groups ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS groups (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            description TEXT,
            invite_code VARCHAR(8) UNIQUE NOT NULL,
            created_by VARCHAR(36) NOT NULL REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS group_members (
            id VARCHAR(36) PRIMARY KEY,
            group_id VARCHAR(36) NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_group_members_group_user UNIQUE (group_id, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id VARCHAR(36) PRIMARY KEY,
            group_id VARCHAR(36) NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id),
            text TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_messages_group_id ON messages(group_id)")

    # --- Bets ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS bets (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            description TEXT,
            amount NUMERIC(12, 2) NOT NULL,
            is_coin_denominated BOOLEAN NOT NULL DEFAULT false,
            category VARCHAR(64),
            creator_id VARCHAR(36) NOT NULL REFERENCES users(id),
            opponent_id VARCHAR(36) NOT NULL REFERENCES users(id),
            group_id VARCHAR(36) REFERENCES groups(id) ON DELETE SET NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            winner_id VARCHAR(36) REFERENCES users(id),
            third_party_verification BOOLEAN NOT NULL DEFAULT false,
            verifier_id VARCHAR(36) REFERENCES users(id),
            is_public BOOLEAN NOT NULL DEFAULT true,
            end_date TIMESTAMPTZ,
            image_url TEXT,
            resolved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bets_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_bets_winner_only_when_completed
                CHECK (winner_id IS NULL OR status = 'completed')
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_bets_creator ON bets(creator_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_bets_opponent ON bets(opponent_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_bets_group ON bets(group_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id VARCHAR(36) PRIMARY KEY,
            bet_id VARCHAR(36) NOT NULL REFERENCES bets(id) ON DELETE CASCADE,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id),
            text TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_comments_bet_id ON comments(bet_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS evidence (
            id VARCHAR(36) PRIMARY KEY,
            bet_id VARCHAR(36) NOT NULL REFERENCES bets(id) ON DELETE CASCADE,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id),
            text TEXT,
            image_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_evidence_has_content CHECK (text IS NOT NULL OR image_url IS NOT NULL)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_evidence_bet_id ON evidence(bet_id)")

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id VARCHAR(36) PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            category VARCHAR(32) NOT NULL,
            metric VARCHAR(32) NOT NULL,
            icon VARCHAR(32),
            color VARCHAR(32),
            max_tier INTEGER NOT NULL,
            tier_thresholds JSONB NOT NULL,
            tier_rewards JSONB NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_achievements_metric ON achievements(metric)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id VARCHAR(36) NOT NULL REFERENCES achievements(id) ON DELETE CASCADE,
            progress INTEGER NOT NULL DEFAULT 0,
            current_tier INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)

    # --- Coin ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount NUMERIC(12, 2),
            bet_coins INTEGER,
            type VARCHAR(32) NOT NULL,
            description TEXT,
            bet_id VARCHAR(36) REFERENCES bets(id) ON DELETE SET NULL,
            idempotency_key VARCHAR(160) UNIQUE NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_transactions_user_created
        ON transactions(user_id, created_at)
    """)


def downgrade() -> None:
    for table in [
        "transactions",
        "user_achievements",
        "achievements",
        "evidence",
        "comments",
        "bets",
        "messages",
        "group_members",
        "groups",
        "friendships",
        "users",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
