"""VoxArena foundation: personas, taxonomy, debates, and debate participants.

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the foundational tables for VoxArena:
- taxonomy_categories / taxonomy_terms: category -> term hierarchy
- personas / persona_taxonomies: personas and their taxonomy links
- debates / debate_participants: debates and their replace-all rosters

Child rows cascade on parent delete.
"""

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Apply migration: create tables and indexes."""

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS taxonomy_categories (
            id TEXT PRIMARY KEY,
            key TEXT NOT NULL UNIQUE,
            full_name TEXT NOT NULL UNIQUE,
            description TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS taxonomy_terms (
            id TEXT PRIMARY KEY,
            category TEXT NOT NULL,
            category_id TEXT REFERENCES taxonomy_categories(id) ON DELETE CASCADE,
            term TEXT NOT NULL,
            slug TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_taxonomy_terms_category_term UNIQUE (category, term)
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_taxonomy_terms_category
        ON taxonomy_terms (category)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS personas (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            nickname TEXT,
            description TEXT,
            avatar_url TEXT,
            profession TEXT,
            age_group TEXT,
            gender_identity TEXT,
            pronouns TEXT,
            accent_note TEXT,
            temperament TEXT,
            confidence INTEGER,
            verbosity INTEGER,
            tone TEXT,
            vocabulary_style TEXT,
            conflict_style TEXT,
            debate_approach JSONB NOT NULL DEFAULT '[]'::jsonb,
            quirks JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS persona_taxonomies (
            persona_id TEXT NOT NULL REFERENCES personas(id) ON DELETE CASCADE,
            taxonomy_id TEXT NOT NULL REFERENCES taxonomy_terms(id) ON DELETE CASCADE,
            PRIMARY KEY (persona_id, taxonomy_id)
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS debates (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            topic TEXT NOT NULL,
            description TEXT,
            format TEXT NOT NULL DEFAULT 'structured',
            status TEXT NOT NULL DEFAULT 'DRAFT'
                CHECK (status IN ('DRAFT', 'ACTIVE', 'COMPLETED', 'ARCHIVED')),
            config JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_debates_created_at
        ON debates (created_at)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS debate_participants (
            id TEXT PRIMARY KEY,
            debate_id TEXT NOT NULL REFERENCES debates(id) ON DELETE CASCADE,
            persona_id TEXT NOT NULL REFERENCES personas(id),
            role TEXT NOT NULL
                CHECK (role IN ('MODERATOR', 'DEBATER', 'HOST', 'GUEST')),
            order_index INTEGER NOT NULL DEFAULT 0,
            display_name TEXT,
            voice_id TEXT,
            meta JSONB
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_debate_participants_debate_id
        ON debate_participants (debate_id)
        """
    )


def downgrade() -> None:
    """Revert migration: drop tables in dependency order."""
    op.execute("DROP TABLE IF EXISTS debate_participants")
    op.execute("DROP TABLE IF EXISTS debates")
    op.execute("DROP TABLE IF EXISTS persona_taxonomies")
    op.execute("DROP TABLE IF EXISTS personas")
    op.execute("DROP TABLE IF EXISTS taxonomy_terms")
    op.execute("DROP TABLE IF EXISTS taxonomy_categories")
