"""Initial FocusArena schema.

Creates universities, campuses, users, refresh_tokens, study_sessions,
achievements, user_achievements and friendships.

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
    # --- Campus directory ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS universities (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            country VARCHAR(50) NOT NULL,
            city VARCHAR(50),
            latitude DOUBLE PRECISION,
            longitude DOUBLE PRECISION,
            metadata JSON,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_universities_name_country
        ON universities(lower(name), lower(country))
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS campuses (
            id BIGSERIAL PRIMARY KEY,
            university_id BIGINT NOT NULL REFERENCES universities(id) ON DELETE CASCADE,
            name VARCHAR(100) NOT NULL,
            latitude DOUBLE PRECISION NOT NULL,
            longitude DOUBLE PRECISION NOT NULL,
            address VARCHAR(255),
            metadata JSON,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_campuses_university_id ON campuses(university_id)")

    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            name VARCHAR(100),
            avatar_url TEXT,
            preferences JSON,
            university_id BIGINT REFERENCES universities(id) ON DELETE SET NULL,
            xp INTEGER NOT NULL DEFAULT 0 CHECK (xp >= 0),
            level INTEGER NOT NULL DEFAULT 1,
            streak_count INTEGER NOT NULL DEFAULT 0,
            total_study_hours DOUBLE PRECISION NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_university_id ON users(university_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_xp ON users(xp DESC, id)")

    # --- Refresh tokens ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS refresh_tokens (
            id VARCHAR(36) PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash VARCHAR(128) UNIQUE NOT NULL,
            issued_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL,
            revoked_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_refresh_tokens_user_id ON refresh_tokens(user_id)")

    # --- Study sessions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS study_sessions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ,
            duration INTEGER NOT NULL,
            subject VARCHAR(100),
            task VARCHAR(255),
            completed BOOLEAN NOT NULL DEFAULT false,
            xp_earned INTEGER NOT NULL DEFAULT 0 CHECK (xp_earned >= 0),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_study_sessions_open_per_user
        ON study_sessions(user_id)
        WHERE completed = false AND end_time IS NULL
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_study_sessions_user_start
        ON study_sessions(user_id, start_time)
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) UNIQUE NOT NULL,
            description VARCHAR(500) NOT NULL,
            icon VARCHAR(255),
            xp_reward INTEGER NOT NULL DEFAULT 0,
            condition JSON NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id BIGINT NOT NULL REFERENCES achievements(id) ON DELETE CASCADE,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_pair UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_achievements_user_id ON user_achievements(user_id)")

    # --- Friendships ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            friend_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            pair_key VARCHAR(64) UNIQUE NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'accepted', 'blocked')),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CHECK (user_id <> friend_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_friendships_user_id ON friendships(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_friendships_friend_id ON friendships(friend_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS friendships CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS study_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS refresh_tokens CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
    op.execute("DROP TABLE IF EXISTS campuses CASCADE")
    op.execute("DROP TABLE IF EXISTS universities CASCADE")
