"""Cohort schema: profiles, curriculum, demos, votes, badges, projects.

Revision ID: 001_cohort_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_cohort_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'member'
                CHECK (role IN ('admin', 'facilitator', 'member')),
            bio TEXT,
            avatar_url TEXT,
            github_url VARCHAR(512),
            slack_handle VARCHAR(64),
            project_idea TEXT,
            repo_url VARCHAR(512),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # --- Weeks & sections ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS weeks (
            id VARCHAR(36) PRIMARY KEY,
            number INTEGER UNIQUE,
            title VARCHAR(200) NOT NULL,
            level SMALLINT NOT NULL DEFAULT 1,
            published BOOLEAN NOT NULL DEFAULT false,
            feedback_url VARCHAR(512),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT weeks_level_range CHECK (level BETWEEN 1 AND 3)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS week_sections (
            id VARCHAR(36) PRIMARY KEY,
            week_id VARCHAR(36) NOT NULL REFERENCES weeks(id) ON DELETE CASCADE,
            slug VARCHAR(64) NOT NULL,
            title VARCHAR(128) NOT NULL,
            content TEXT,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_system BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT uq_week_section_slug UNIQUE (week_id, slug)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_week_sections_week ON week_sections(week_id, sort_order)")

    # --- Demos & votes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS demos (
            id VARCHAR(36) PRIMARY KEY,
            week_id VARCHAR(36) NOT NULL REFERENCES weeks(id) ON DELETE CASCADE,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT,
            url VARCHAR(512),
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_demos_week ON demos(week_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_demos_user ON demos(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS votes (
            id VARCHAR(36) PRIMARY KEY,
            demo_id VARCHAR(36) NOT NULL REFERENCES demos(id) ON DELETE CASCADE,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            value SMALLINT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT votes_value_unit CHECK (value IN (-1, 1))
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_votes_demo_user ON votes(demo_id, user_id)")

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            color VARCHAR(16) NOT NULL DEFAULT '#6366f1',
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # --- Projects ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS projects (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT,
            goal TEXT,
            status VARCHAR(16) NOT NULL DEFAULT 'draft'
                CHECK (status IN ('draft', 'in_progress', 'completed')),
            tech_stack JSONB NOT NULL DEFAULT '[]',
            avatar_url TEXT,
            screenshots JSONB NOT NULL DEFAULT '[]',
            demo_url VARCHAR(512),
            github_url VARCHAR(512),
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_projects_sort ON projects(sort_order)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS project_feedback (
            id VARCHAR(36) PRIMARY KEY,
            project_id VARCHAR(36) NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            instructor_id VARCHAR(64) REFERENCES profiles(id) ON DELETE SET NULL,
            content TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # --- Badge awards (user XOR project target is checked by the award index, not the schema) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_awards (
            id VARCHAR(36) PRIMARY KEY,
            badge_id VARCHAR(36) NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            user_id VARCHAR(64) REFERENCES profiles(id) ON DELETE CASCADE,
            project_id VARCHAR(36) REFERENCES projects(id) ON DELETE CASCADE,
            awarded_by VARCHAR(64) REFERENCES profiles(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_badge_awards_user ON badge_awards(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_badge_awards_project ON badge_awards(project_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_badge_awards_created ON badge_awards(created_at DESC)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS badge_awards CASCADE")
    op.execute("DROP TABLE IF EXISTS project_feedback CASCADE")
    op.execute("DROP TABLE IF EXISTS projects CASCADE")
    op.execute("DROP TABLE IF EXISTS badges CASCADE")
    op.execute("DROP TABLE IF EXISTS votes CASCADE")
    op.execute("DROP TABLE IF EXISTS demos CASCADE")
    op.execute("DROP TABLE IF EXISTS week_sections CASCADE")
    op.execute("DROP TABLE IF EXISTS weeks CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
